from fastnginx.index import IndexStore
from fastnginx.records import ConfigurationRecord


def records():
    return [
        ConfigurationRecord(domain="a.test", port="3000", path="/x/a.test", created="1"),
        ConfigurationRecord(domain="b.test", port="4000", path="/x/b.test", status="inactive", created="2"),
        ConfigurationRecord(domain="c.test c2.test", port="5000", path="/x/c.test", created="3"),
    ]


def test_missing_index_is_empty(tmp_path):
    assert IndexStore(tmp_path / "nope" / "config_index").load() == []


def test_save_then_load_preserves_order(tmp_path):
    store = IndexStore(tmp_path / "config_index")
    store.save(records())
    assert store.load() == records()


def test_save_empty_list_writes_empty_file(tmp_path):
    store = IndexStore(tmp_path / "config_index")
    store.save(records())
    store.save([])
    assert store.index_file.read_text() == ""
    assert store.load() == []


def test_save_leaves_no_temp_files(tmp_path):
    store = IndexStore(tmp_path / "config_index")
    store.save(records())
    store.save(records()[:1])
    assert [p.name for p in tmp_path.iterdir()] == ["config_index"]


def test_load_skips_blank_lines(tmp_path):
    index = tmp_path / "config_index"
    index.write_text("domain=a.test,port=1\n\n   \ndomain=b.test,port=2")
    loaded = IndexStore(index).load()
    assert [r.domain for r in loaded] == ["a.test", "b.test"]


def test_append_adds_one_line(tmp_path):
    store = IndexStore(tmp_path / "config_index")
    first, second, third = records()
    store.save([first, second])
    before = store.index_file.read_text()
    store.append(third)
    after = store.index_file.read_text()
    assert after.startswith(before)
    assert store.load() == [first, second, third]


def test_append_after_file_without_trailing_newline(tmp_path):
    index = tmp_path / "config_index"
    index.write_text("domain=a.test,port=1")
    store = IndexStore(index)
    store.append(ConfigurationRecord(domain="b.test", port="2"))
    assert [r.domain for r in store.load()] == ["a.test", "b.test"]


def test_append_creates_index(tmp_path):
    store = IndexStore(tmp_path / "data" / "config_index")
    store.append(records()[0])
    assert store.load() == records()[:1]


def test_ensure_exists(tmp_path):
    store = IndexStore(tmp_path / "data" / "config_index")
    assert store.ensure_exists() is True
    assert store.ensure_exists() is False
    assert store.index_file.read_text() == ""

import os
import subprocess

from fastnginx.projector import SiteFiles
from fastnginx.records import ConfigurationRecord


def site_files(tmp_path):
    available = tmp_path / "sites-available"
    enabled = tmp_path / "sites-enabled"
    available.mkdir()
    enabled.mkdir()
    return SiteFiles(available, enabled)


def record_for(files, domain="a.test", status="active"):
    return ConfigurationRecord(
        domain=domain,
        port="3000",
        path=str(files.config_path(domain.split()[0])),
        status=status,
    )


def test_materialize_writes_file_and_link(tmp_path):
    files = site_files(tmp_path)
    record = record_for(files, "a.test www.a.test")
    steps = files.materialize(record, "server {}\n")

    assert files.config_path("a.test").read_text() == "server {}\n"
    link = files.link_path("a.test")
    assert link.is_symlink()
    assert os.readlink(link) == record.path
    assert all(s.ok for s in steps)


def test_materialize_inactive_record_has_no_link(tmp_path):
    files = site_files(tmp_path)
    files.materialize(record_for(files, status="inactive"), "server {}\n")
    assert not os.path.lexists(files.link_path("a.test"))


def test_materialize_keeps_existing_link(tmp_path):
    files = site_files(tmp_path)
    record = record_for(files)
    files.materialize(record, "one")
    steps = files.materialize(record, "two")
    assert steps[-1].skipped
    assert files.link_path("a.test").read_text() == "two"


def test_set_enabled_is_idempotent(tmp_path):
    files = site_files(tmp_path)
    record = record_for(files)
    files.write_config(files.config_path("a.test"), "x")

    assert files.set_enabled(record, False).skipped
    assert files.set_enabled(record, True).ok
    assert files.set_enabled(record, True).skipped
    assert files.link_path("a.test").is_symlink()
    assert files.set_enabled(record, False).ok
    assert not os.path.lexists(files.link_path("a.test"))
    assert files.set_enabled(record, False).skipped


def test_rename_moves_file_and_link(tmp_path):
    files = site_files(tmp_path)
    record = record_for(files)
    files.materialize(record, "conf")

    new_path, steps = files.rename(record.path, "b.test")

    assert new_path == files.config_path("b.test")
    assert not files.config_path("a.test").exists()
    assert new_path.read_text() == "conf"
    assert not os.path.lexists(files.link_path("a.test"))
    assert os.readlink(files.link_path("b.test")) == str(new_path)
    assert [s.name for s in steps] == ["disable link", "move config", "enable link"]
    assert all(s.ok for s in steps)


def test_rename_of_inactive_site_creates_no_link(tmp_path):
    files = site_files(tmp_path)
    files.write_config(files.config_path("a.test"), "conf")
    new_path, steps = files.rename(files.config_path("a.test"), "b.test", enabled=False)
    assert new_path.exists()
    assert not os.path.lexists(files.link_path("b.test"))


def test_rename_with_missing_file_still_links(tmp_path):
    files = site_files(tmp_path)
    new_path, steps = files.rename(files.config_path("gone.test"), "b.test")
    assert steps[1].skipped
    assert files.link_path("b.test").is_symlink()


def test_rename_reports_move_failure_and_continues(tmp_path, monkeypatch):
    files = site_files(tmp_path)
    files.write_config(files.config_path("a.test"), "conf")

    def broken_rename(src, dst):
        raise PermissionError("denied")

    monkeypatch.setattr(os, "rename", broken_rename)
    new_path, steps = files.rename(files.config_path("a.test"), "b.test")

    move = steps[1]
    assert not move.ok
    assert "denied" in move.detail
    assert steps[2].name == "enable link"
    assert steps[2].ok


def test_link_falls_back_to_ln_command(tmp_path, monkeypatch):
    files = site_files(tmp_path)
    calls = []

    def broken_symlink(target, link):
        raise PermissionError("denied")

    def fake_run(command, **kwargs):
        calls.append(command)
        return subprocess.CompletedProcess(command, 0, "", "")

    monkeypatch.setattr(os, "symlink", broken_symlink)
    monkeypatch.setattr(subprocess, "run", fake_run)

    step = files.enable("a.test", files.config_path("a.test"))
    assert step.ok
    assert "ln command" in step.detail
    assert calls == [["sudo", "ln", "-sf", str(files.config_path("a.test")), str(files.link_path("a.test"))]]


def test_link_reports_both_failures(tmp_path, monkeypatch):
    files = site_files(tmp_path)

    def broken_symlink(target, link):
        raise PermissionError("denied")

    def fake_run(command, **kwargs):
        return subprocess.CompletedProcess(command, 1, "", "sudo: a password is required")

    monkeypatch.setattr(os, "symlink", broken_symlink)
    monkeypatch.setattr(subprocess, "run", fake_run)

    step = files.enable("a.test", files.config_path("a.test"))
    assert not step.ok
    assert "denied" in step.detail
    assert "password is required" in step.detail


def test_remove_deletes_file_and_link(tmp_path):
    files = site_files(tmp_path)
    record = record_for(files)
    files.materialize(record, "conf")
    steps = files.remove(record)
    assert not files.config_path("a.test").exists()
    assert not os.path.lexists(files.link_path("a.test"))
    assert all(s.ok and not s.skipped for s in steps)


def test_remove_missing_targets_is_not_an_error(tmp_path):
    files = site_files(tmp_path)
    steps = files.remove(record_for(files))
    assert all(s.ok and s.skipped for s in steps)

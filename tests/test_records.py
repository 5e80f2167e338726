from fastnginx.records import (
    ConfigurationRecord,
    decode,
    encode,
    normalize_domain,
    primary_domain,
)


def make_record(**kwargs):
    values = dict(
        domain="app.test www.app.test",
        port="3000",
        host="10.0.0.5",
        type="proxy",
        ip="127.0.0.1",
        path="/etc/nginx/sites-available/app.test",
        status="active",
        created="1700000000000",
    )
    values.update(kwargs)
    return ConfigurationRecord(**values)


def test_encode_uses_canonical_key_order():
    line = encode(make_record())
    assert line == (
        "domain=app.test www.app.test,port=3000,host=10.0.0.5,type=proxy,"
        "ip=127.0.0.1,path=/etc/nginx/sites-available/app.test,status=active,"
        "created=1700000000000"
    )


def test_decode_inverts_encode():
    record = make_record(status="inactive", extra={"owner": "ops"})
    assert decode(encode(record)) == record


def test_decode_drops_parts_without_equals():
    record = decode("domain=a.test,garbage,port=80")
    assert record.domain == "a.test"
    assert record.port == "80"
    assert record.extra == {}


def test_decode_missing_keys_fall_back_to_defaults():
    record = decode("domain=a.test")
    assert record.host == "127.0.0.1"
    assert record.ip == "127.0.0.1"
    assert record.type == "proxy"
    assert record.status == "active"
    assert record.path == ""
    assert record.created == ""


def test_decode_never_fails_on_empty_line():
    record = decode("")
    assert record.domain == ""
    assert record.primary_domain == ""


def test_decode_keeps_unknown_keys():
    record = decode("domain=a.test,port=80,tls=off")
    assert record.extra == {"tls": "off"}
    assert encode(record).endswith(",tls=off")


def test_decode_splits_on_first_equals_and_strips():
    record = decode(" domain = a.test , port= 8080")
    assert record.domain == "a.test"
    assert record.port == "8080"


def test_primary_domain_is_first_token():
    assert primary_domain("a.test  www.a.test") == "a.test"
    assert make_record().primary_domain == "app.test"
    assert primary_domain("   ") == ""


def test_is_active():
    assert make_record().is_active
    assert not make_record(status="inactive").is_active


def test_normalize_domain():
    assert normalize_domain("a.test\twww.a.test\n") == "a.test www.a.test"
    assert normalize_domain("  a.test   b.test ") == "a.test b.test"
    assert normalize_domain(None) == ""


def test_normalized_domain_round_trips():
    record = make_record(domain=normalize_domain("a.test\n\twww.a.test"))
    assert "\n" not in encode(record)
    assert decode(encode(record)) == record


def test_decode_strips_surrounding_whitespace():
    record = make_record(domain=" a.test", host="10.0.0.5 ")
    decoded = decode(encode(record))
    assert decoded.domain == "a.test"
    assert decoded.host == "10.0.0.5"

import pytest

from fastnginx.config import Settings
from fastnginx.lifecycle import SiteManager


class FakeNginx:
    """Stands in for nginx -t / systemctl reload."""

    def __init__(self):
        self.validate_result = (True, "syntax is ok")
        self.reload_result = (True, "")
        self.calls = []

    def validate(self):
        self.calls.append("validate")
        return self.validate_result

    def reload(self):
        self.calls.append("reload")
        return self.reload_result


@pytest.fixture
def settings(tmp_path):
    base = tmp_path / "base"
    base.mkdir()
    available = tmp_path / "nginx" / "sites-available"
    enabled = tmp_path / "nginx" / "sites-enabled"
    available.mkdir(parents=True)
    enabled.mkdir(parents=True)
    hosts = tmp_path / "hosts"
    hosts.write_text("127.0.0.1\tlocalhost\n::1\tlocalhost ip6-localhost\n")
    return Settings(
        base_path=str(base),
        sites_available=str(available),
        sites_enabled=str(enabled),
        hosts_file=str(hosts),
        validate_command=["true"],
        reload_command=["true"],
        status_command=["true"],
        ports_command=["true"],
    )


@pytest.fixture
def nginx():
    return FakeNginx()


@pytest.fixture
def manager(settings, nginx):
    return SiteManager.from_settings(settings, nginx=nginx)

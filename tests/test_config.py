"""
Tests for configuration and the command-line entry point
"""

from unittest.mock import patch

import pytest

import route53_sidecar
from conftest import FakeDirectory
from route53_sidecar import ChangeAction, ConfigError, RunMode, SidecarConfig, main


def test_defaults():
    config = SidecarConfig.from_args([], environ={})

    assert config.dns == "my.example.com"
    assert config.hosted_zone == "Z2AAAABCDEFGT4"
    assert config.dns_ttl == 10
    assert config.ip_address == "public-ipv4"
    assert config.setup_delay == 10
    assert config.provider == "route53"
    assert config.mode is RunMode.LIFECYCLE


def test_environment_values():
    environ = {
        "DNS": "api.example.com",
        "HOSTEDZONE": "Z1",
        "DNSTTL": "30",
        "IPADDRESS": "ecs",
        "SETUPDELAY": "0",
        "REGISTER": "true",
        "DEFAULT_NETWORK": "frontend, backend",
        "LOG_LEVEL": "debug",
    }
    config = SidecarConfig.from_args([], environ=environ)

    assert config.dns == "api.example.com"
    assert config.hosted_zone == "Z1"
    assert config.dns_ttl == 30
    assert config.ip_address == "ecs"
    assert config.setup_delay == 0
    assert config.mode is RunMode.REGISTER
    assert config.default_networks == ["frontend", "backend"]
    assert config.log_level == "DEBUG"


def test_flags_override_environment():
    """Test command-line flags win over environment variables"""
    environ = {"DNS": "env.example.com", "DNSTTL": "30"}
    config = SidecarConfig.from_args(["--dns", "flag.example.com", "-dnsttl", "60"], environ=environ)

    assert config.dns == "flag.example.com"
    assert config.dns_ttl == 60


@pytest.mark.parametrize("argv, mode", [
    (["--register"], RunMode.REGISTER),
    (["-unregister"], RunMode.UNREGISTER),
    (["--register", "false"], RunMode.LIFECYCLE),
    ([], RunMode.LIFECYCLE),
])
def test_mode_selection(argv, mode):
    assert SidecarConfig.from_args(argv, environ={}).mode is mode


def test_flag_can_switch_off_environment_mode():
    config = SidecarConfig.from_args(["--unregister=false"], environ={"UNREGISTER": "true"})

    assert config.mode is RunMode.LIFECYCLE


@pytest.mark.parametrize("argv, environ", [
    (["--register", "--unregister"], {}),
    (["--dnsttl", "ten"], {}),
    (["--dnsttl", "-1"], {}),
    ([], {"SETUPDELAY": "-5"}),
    ([], {"REGISTER": "maybe"}),
    (["--dns", ""], {}),
    ([], {"DNS_PROVIDER": "cloudflare"}),
    ([], {"DNS_PROVIDER": "tsig", "DNS_SERVER": "192.0.2.53"}),
    ([], {"DNS_PROVIDER": "tsig", "TSIG_KEY_NAME": "k.", "TSIG_KEY_SECRET": "c2VjcmV0"}),
    ([], {"LOG_LEVEL": "chatty"}),
])
def test_invalid_configuration(argv, environ):
    with pytest.raises(ConfigError):
        SidecarConfig.from_args(argv, environ=environ)


def test_tsig_configuration():
    environ = {
        "DNS_PROVIDER": "TSIG",
        "DNS_SERVER": "192.0.2.53",
        "TSIG_KEY_NAME": "sidecar-key.",
        "TSIG_KEY_SECRET": "c2VjcmV0",
    }
    config = SidecarConfig.from_args([], environ=environ)

    assert config.provider == "tsig"
    assert config.tsig_algorithm == "hmac-sha256"
    assert isinstance(route53_sidecar.build_directory(config), route53_sidecar.TsigClient)


def test_record_spec_uses_resolved_address():
    config = SidecarConfig.from_args(["--dns", "api.example.com", "--dnsttl", "20"], environ={})
    record = config.record_spec("10.0.0.5")

    assert record.name == "api.example.com"
    assert record.zone_id == config.hosted_zone
    assert record.ttl == 20
    assert record.record_type == "A"
    assert record.weight == 100
    assert record.set_identifier == record.address == "10.0.0.5"


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DNS", "HOSTEDZONE", "DNSTTL", "IPADDRESS", "REGISTER", "UNREGISTER",
                 "SETUPDELAY", "DNS_PROVIDER", "LOG_LEVEL", "DEFAULT_NETWORK",
                 "ECS_CONTAINER_METADATA_URI_V4", "ECS_CONTAINER_METADATA_URI"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(route53_sidecar, "POLL_INTERVAL", 0.01)


def test_main_register(clean_env):
    """Test register mode publishes and exits cleanly"""
    directory = FakeDirectory()
    argv = ["--register", "--ipaddress", "10.0.0.5", "--setupdelay", "0", "--dnsttl", "0"]
    with patch("route53_sidecar.build_directory", return_value=directory):
        assert main(argv) == 0

    assert directory.actions == [ChangeAction.UPSERT]
    assert directory.requests[0].record.address == "10.0.0.5"


def test_main_register_submission_failure_exits_cleanly(clean_env):
    directory = FakeDirectory(fail_actions=[ChangeAction.UPSERT])
    with patch("route53_sidecar.build_directory", return_value=directory):
        assert main(["--register", "--ipaddress", "10.0.0.5", "--setupdelay", "0"]) == 0


def test_main_unregister_submission_failure_is_fatal(clean_env):
    directory = FakeDirectory(fail_actions=[ChangeAction.DELETE])
    with patch("route53_sidecar.build_directory", return_value=directory):
        assert main(["--unregister", "--ipaddress", "10.0.0.5", "--dnsttl", "0"]) == 1


def test_main_invalid_configuration(clean_env):
    assert main(["--register", "--unregister"]) == 1


def test_main_address_failure_before_any_change(clean_env):
    """Test an unresolvable address stops before touching DNS"""
    directory = FakeDirectory()
    with patch("route53_sidecar.build_directory", return_value=directory):
        assert main(["--register", "--ipaddress", "ecs"]) == 1

    assert directory.requests == []


def _tsig_environ(**overrides):
    environ = {
        "DNS_PROVIDER": "tsig",
        "DNS_SERVER": "192.0.2.53",
        "TSIG_KEY_NAME": "sidecar-key.",
        "TSIG_KEY_SECRET": "c2VjcmV0",
    }
    environ.update(overrides)
    return environ


@pytest.mark.parametrize("server", ["2001:db8::53", "192.0.2.53"])
def test_tsig_server_address_is_not_resolved(server):
    """Test literal IPv4 and IPv6 servers are used without a lookup"""
    config = SidecarConfig.from_args([], environ=_tsig_environ(DNS_SERVER=server))
    with patch("route53_sidecar.socket.gethostbyname") as gethostbyname:
        directory = route53_sidecar.build_directory(config)

    gethostbyname.assert_not_called()
    assert directory.server == server


def test_tsig_server_name_is_resolved():
    config = SidecarConfig.from_args([], environ=_tsig_environ(DNS_SERVER="ns1.example.com"))
    with patch("route53_sidecar.socket.gethostbyname", return_value="192.0.2.54"):
        directory = route53_sidecar.build_directory(config)

    assert directory.server == "192.0.2.54"


def test_tsig_malformed_secret_is_config_error():
    """Test a secret that is not base64 is reported as configuration"""
    config = SidecarConfig.from_args([], environ=_tsig_environ(TSIG_KEY_SECRET="abc"))

    with pytest.raises(ConfigError, match="Invalid TSIG key"):
        route53_sidecar.build_directory(config)


def test_main_malformed_tsig_secret(clean_env, monkeypatch):
    for name, value in _tsig_environ(TSIG_KEY_SECRET="abc").items():
        monkeypatch.setenv(name, value)

    assert main(["--register", "--ipaddress", "10.0.0.5", "--setupdelay", "0"]) == 1

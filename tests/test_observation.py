"""Tests for banner.observation - record construction and defaults."""
import ipaddress

import pytest

from banner import Observation, SoftwareCategory, StructuredVersion, UNSPECIFIED_HOST


class TestObservationCreate:

    def test_defaults(self):
        obs = Observation.create(name="Foo")

        assert obs.host == UNSPECIFIED_HOST
        assert obs.software_category is SoftwareCategory.UNKNOWN
        assert obs.version == StructuredVersion(0, 0, 0, "")
        assert obs.host_port is None
        assert obs.force_log is False

    def test_raw_version_falls_back_to_formatted(self):
        obs = Observation.create(name="SSH", version=StructuredVersion(2, 0))
        assert obs.raw_unparsed_version == "SSH 2.0.0"

    def test_explicit_raw_version_kept(self):
        obs = Observation.create(name="SSH", raw_unparsed_version="SSH-2.0-OpenSSH_8.9")
        assert obs.raw_unparsed_version == "SSH-2.0-OpenSSH_8.9"

    def test_host_text_converted(self):
        obs = Observation.create(name="Foo", host="2001:db8::1")
        assert obs.host == ipaddress.ip_address("2001:db8::1")

    def test_invalid_host_rejected(self):
        with pytest.raises(ValueError):
            Observation.create(name="Foo", host="not-an-ip")

    def test_observations_are_immutable(self):
        obs = Observation.create(name="Foo")
        with pytest.raises(AttributeError):
            obs.name = "Bar"

    def test_with_host_keeps_everything_else(self):
        obs = Observation.create(name="Foo", version=StructuredVersion(1, 2))
        moved = obs.with_host("10.1.1.1", SoftwareCategory.WEB_SERVER, host_port=80)

        assert moved.host == ipaddress.ip_address("10.1.1.1")
        assert moved.software_category is SoftwareCategory.WEB_SERVER
        assert moved.host_port == 80
        assert moved.version == obs.version
        assert moved.timestamp == obs.timestamp


class TestRecord:

    def test_record_fields(self):
        obs = Observation.create(
            name="Apache",
            version=StructuredVersion(2, 4, 10, "beta1"),
            raw_unparsed_version="Apache/2.4.10-beta1",
            host="192.168.1.10",
            software_category=SoftwareCategory.WEB_SERVER,
        )
        record = obs.to_record()

        assert record["host"] == "192.168.1.10"
        assert record["software_category"] == "WEB_SERVER"
        assert record["name"] == "Apache"
        assert (record["version_major"], record["version_minor"], record["version_minor2"]) == (2, 4, 10)
        assert record["version_addl"] == "beta1"
        assert record["raw_unparsed_version"] == "Apache/2.4.10-beta1"


class TestCategory:

    @pytest.mark.parametrize("text,expected", [
        ("WEB_SERVER", SoftwareCategory.WEB_SERVER),
        ("web-server", SoftwareCategory.WEB_SERVER),
        (" printer ", SoftwareCategory.PRINTER),
        ("", SoftwareCategory.UNKNOWN),
        (None, SoftwareCategory.UNKNOWN),
        ("toaster", SoftwareCategory.UNKNOWN),
    ])
    def test_from_name(self, text, expected):
        assert SoftwareCategory.from_name(text) is expected

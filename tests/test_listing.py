"""Tests for apt list output parsing"""
from apt_exporter.analysis.listing import count_by_labels, parse_apt_output, parse_line
from apt_exporter.core.models import PackageRecord

from conftest import INSTALLED_OUTPUT, UPGRADEABLE_OUTPUT


class TestParseLine:
    def test_installed_line(self):
        record = parse_line("nginx/stable,stable-updates 1.18.0 amd64 [installed]")

        assert record == PackageRecord(
            name="nginx", suites=("stable", "stable-updates"), architecture="amd64"
        )

    def test_upgradable_line(self):
        record = parse_line(
            "libc6/focal-updates,focal-security 2.31-0ubuntu9.16 amd64 "
            "[upgradable from: 2.31-0ubuntu9.9]"
        )

        assert record.name == "libc6"
        assert record.suites == ("focal-updates", "focal-security")
        assert record.architecture == "amd64"

    def test_duplicate_suites_keep_first_appearance(self):
        record = parse_line("vim/jammy,jammy-updates,jammy,now 2:8.2 arm64 [installed]")

        assert record.suites == ("jammy", "jammy-updates", "now")

    def test_empty_suite_tokens_dropped(self):
        record = parse_line("vim/jammy,,now 2:8.2 arm64")

        assert record.suites == ("jammy", "now")

    def test_only_commas_is_not_a_record(self):
        assert parse_line("vim/,, 2:8.2 arm64") is None

    def test_header_and_blank_lines(self):
        assert parse_line("Listing... Done") is None
        assert parse_line("") is None
        assert parse_line("WARNING: apt does not have a stable CLI interface.") is None

    def test_missing_architecture(self):
        assert parse_line("nginx/stable 1.18.0") is None


class TestParseAptOutput:
    def test_skips_non_matching_lines(self):
        records = parse_apt_output(INSTALLED_OUTPUT)

        assert [r.name for r in records] == ["adduser", "nginx", "libc6"]
        assert records[0].architecture == "all"
        assert records[2].suites == ("focal-updates", "focal-security", "now")

    def test_accepts_text(self):
        assert parse_apt_output(UPGRADEABLE_OUTPUT.decode()) == parse_apt_output(UPGRADEABLE_OUTPUT)

    def test_no_matches_is_empty(self):
        assert parse_apt_output(b"Listing... Done\n\n") == []
        assert parse_apt_output(b"") == []

    def test_invalid_utf8_does_not_raise(self):
        records = parse_apt_output(b"caf\xe9/stable 1.0 amd64\n")

        assert len(records) == 1
        assert records[0].architecture == "amd64"

    def test_parsing_is_idempotent(self):
        assert parse_apt_output(INSTALLED_OUTPUT) == parse_apt_output(INSTALLED_OUTPUT)


def test_count_by_labels_counts_record_suite_pairs():
    records = parse_apt_output(INSTALLED_OUTPUT)

    counts = count_by_labels(records)

    assert counts[("amd64", "stable")] == 1
    assert counts[("amd64", "stable-updates")] == 1
    assert counts[("amd64", "focal-updates")] == 1
    assert counts[("all", "focal")] == 1
    assert counts[("all", "now")] == 1
    assert counts[("amd64", "now")] == 1
    assert sum(counts.values()) == 2 + 2 + 3

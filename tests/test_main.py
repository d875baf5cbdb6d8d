"""Tests for the command line entry point (offline catalog only)."""

import argparse

import pytest

import main


class TestCatalogCommand:
    def test_lists_fallback_services(self, capsys):
        assert main.main(["catalog"]) == 0
        out = capsys.readouterr().out
        assert "Residential Cleaning [residential-fallback]" in out
        assert "Weekly [weekly-fallback]  15% off" in out


class TestQuoteCommand:
    def test_quote_with_extras(self, capsys):
        code = main.main([
            "quote", "--service", "residential-fallback", "--frequency", "weekly-fallback",
            "--extra", "bedroom-residential-fallback=2",
        ])
        assert code == 0
        out = capsys.readouterr().out
        # 120 - 18 + 40 = 142, tax 14.20
        assert "Total:              $156.20" in out

    def test_add_on_from_other_service_rejected(self, capsys):
        code = main.main([
            "quote", "--service", "residential-fallback",
            "--extra", "carpet-commercial-fallback=1",
        ])
        assert code == 1
        captured = capsys.readouterr()
        assert "carpet-commercial-fallback" in captured.err
        assert "Total:" not in captured.out

    def test_unknown_service(self, capsys):
        assert main.main(["quote", "--service", "nope"]) == 1
        assert "Unknown service type" in capsys.readouterr().err

    def test_bad_extra_syntax(self):
        with pytest.raises(argparse.ArgumentTypeError):
            main._parse_extra("bedroom=lots")


class TestCheckPostalCommand:
    def test_served(self, capsys):
        assert main.main(["check-postal", "12345"]) == 0
        assert "Downtown" in capsys.readouterr().out

    def test_not_served(self, capsys):
        assert main.main(["check-postal", "00000"]) == 1
        assert "outside our service area" in capsys.readouterr().out

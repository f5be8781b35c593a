from __future__ import annotations

import importlib

import pytest


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("nlinterface.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_decode_command_prints_intent() -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from nlinterface.main import app

    result = typer_testing.CliRunner().invoke(app, ["decode", "Go to place details"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "navigate" in result.stdout
    assert "place_details" in result.stdout

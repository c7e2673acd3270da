# tests/unit/test_cli.py
"""Unit tests for the command-line interface."""

import os
from pathlib import Path
from typing import Callable, List
from unittest.mock import patch

import pytest
from click.testing import CliRunner, Result

from bucket_ferry.cli import cli


def test_cli_config_error_on_missing_azure_url(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """
    Tests that the CLI exits with a status code of 1 on a `ConfigError`.

    Arrange:
        - Ensure neither --azure-url nor FERRY_AZURE_URL is set.
    Act:
        - Run the `cli` command.
    Assert:
        - The exit code is 1.
        - The output contains the expected error message.

    Args:
        caplog (pytest.LogCaptureFixture): Pytest fixture to capture log output.
    """
    runner: CliRunner = CliRunner()
    with patch.dict(os.environ):
        os.environ.pop("FERRY_AZURE_URL", None)
        with patch("bucket_ferry.cli.load_dotenv"):
            result: Result = runner.invoke(cli, input="")

    assert result.exit_code == 1
    assert (
        "A critical application error occurred: An Azure storage account URL "
        "must be set" in caplog.text
    )


def test_cli_rejects_unknown_tier() -> None:
    """
    Tests that an access tier outside the allow-list is a usage error.
    """
    runner: CliRunner = CliRunner()
    result: Result = runner.invoke(
        cli,
        ["--azure-url", "https://acct.blob.core.windows.net/", "--azure-tier", "Lukewarm"],
    )

    assert result.exit_code == 2
    assert "Lukewarm" in result.output


def test_cli_rejects_zero_concurrency() -> None:
    """
    Tests that fewer than one worker is a usage error.
    """
    runner: CliRunner = CliRunner()
    result: Result = runner.invoke(
        cli, ["--azure-url", "https://acct.blob.core.windows.net/", "-j", "0"]
    )

    assert result.exit_code == 2


def test_cli_full_run(
    fake_copier,
    work_list_writer: Callable[[List[str]], Path],
    caplog: pytest.LogCaptureFixture,
) -> None:
    """
    Tests a successful run end to end through the CLI with a fake copier.

    Arrange:
        - Write a work list containing one badly encoded key.
        - Patch the copier factory to return the in-memory copier.
    Act:
        - Run the `cli` command with four workers.
    Assert:
        - The exit code is 0 despite the failed item.
        - The summary reports the seen and error counts.

    Args:
        fake_copier (FakeCopier): In-memory copier fixture.
        work_list_writer: Factory fixture writing the work list.
        caplog (pytest.LogCaptureFixture): Pytest fixture to capture log output.
    """
    caplog.set_level("INFO")
    path: Path = work_list_writer(["b.one\tk1", "b.one\t%zz", "b.two\tk%202"])
    runner: CliRunner = CliRunner()

    with patch("bucket_ferry.pipeline.build_copier", return_value=fake_copier):
        result: Result = runner.invoke(
            cli,
            [
                "--input",
                str(path),
                "--azure-url",
                "https://acct.blob.core.windows.net/",
                "-j",
                "4",
                "--azure-tier",
                "Cool",
            ],
        )

    assert result.exit_code == 0, result.output
    assert "Processed 3 (1 errors)" in caplog.text
    assert sorted(fake_copier.copied) == [("b-one", "k1"), ("b-two", "k 2")]


def test_cli_malformed_input_exits_nonzero(
    fake_copier,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """
    Tests that malformed input read from stdin ends the run with exit code 1.

    Args:
        fake_copier (FakeCopier): In-memory copier fixture.
        caplog (pytest.LogCaptureFixture): Pytest fixture to capture log output.
    """
    runner: CliRunner = CliRunner()

    with patch("bucket_ferry.pipeline.build_copier", return_value=fake_copier):
        result: Result = runner.invoke(
            cli,
            ["--azure-url", "https://acct.blob.core.windows.net/"],
            input="bucket\tkey\tunexpected\n",
        )

    assert result.exit_code == 1
    assert "Wrong number of fields at line 1: 3 fields" in caplog.text
    assert "Processed" not in caplog.text

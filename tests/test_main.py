"""Tests for the command-line entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from cardledger.db.store import InMemoryLedgerStore
from cardledger.invocation.dispatcher import Dispatcher, memory_store_factory
from cardledger.main import build_parser, main


@pytest.fixture
def cli(store: InMemoryLedgerStore, clock, config):
    """Run main() against an in-memory store shared across calls."""

    def factory() -> Dispatcher:
        return Dispatcher(memory_store_factory(store), clock=clock, config=config)

    with (
        patch("cardledger.main.create_dispatcher", side_effect=factory),
        patch("cardledger.main.init_db", new_callable=AsyncMock) as init_db,
    ):
        yield init_db


class TestParser:
    def test_invoke_collects_arguments(self) -> None:
        args = build_parser().parse_args(["invoke", "scrap_card", "C1", "ABC001-A1000001"])

        assert args.function == "scrap_card"
        assert args.args == ["C1", "ABC001-A1000001"]

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_init(self, cli, store: InMemoryLedgerStore, capsys) -> None:
        """init creates tables and bootstraps the administrator."""
        exit_code = main(["init"])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["outcome"] == "success"
        assert output["data"]["identity"] == "admin"
        cli.assert_awaited_once()
        assert "user_holder" in store

    def test_invoke_success(self, cli, capsys) -> None:
        main(["init"])
        capsys.readouterr()

        exit_code = main(["invoke", "add_user", "admin", "C1", "Kim", "", "3", ""])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["data"]["affiliation"] == 3

    def test_invoke_failure(self, cli, capsys) -> None:
        """Failures print the envelope and exit non-zero."""
        main(["init"])
        capsys.readouterr()

        exit_code = main(["invoke", "get_user_detail", "admin", "ghost"])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert output["outcome"] == "known_failure"
        assert output["failure"]["kind"] == "not_found"

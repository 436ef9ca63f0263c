"""Tests for the command line interface."""

import json
from unittest.mock import MagicMock, patch

import pytest
import yaml

from ledger_intake.runner.main import create_cli, main


@pytest.fixture
def config_path(tmp_path, clean_env):
    """Path to a config file that does not exist (defaults apply)."""
    return tmp_path / "config.yaml"


@pytest.fixture
def registry_path(tmp_path):
    path = tmp_path / "registry.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "accounts": [
                    {"id": 1, "name": "BBVA"},
                    {"id": 2, "name": "Efectivo"},
                ],
                "categories": [{"id": 10, "name": "Alimentación"}],
            },
            allow_unicode=True,
        ),
        encoding="utf-8",
    )
    return path


class TestCreateCli:
    """Tests for argument parsing."""

    def test_analyze_args(self) -> None:
        args = create_cli().parse_args(["analyze", "statement.csv", "--json"])

        assert args.command == "analyze"
        assert str(args.file) == "statement.csv"
        assert args.json is True
        assert args.raw_text is False

    def test_toon_args(self) -> None:
        args = create_cli().parse_args(["-v", "toon", "1k pan", "50usd amazon"])

        assert args.verbose is True
        assert args.text == ["1k pan", "50usd amazon"]
        assert args.registry is None

    def test_default_config_path(self) -> None:
        args = create_cli().parse_args(["prompt"])
        assert str(args.config) == "config.yaml"


class TestMain:
    """Tests for command dispatch."""

    def test_no_command(self, capsys) -> None:
        assert main([]) == 1

    def test_init_config(self, tmp_path, capsys) -> None:
        path = tmp_path / "config.yaml"

        assert main(["init-config", str(path)]) == 0
        assert path.exists()
        assert "✓" in capsys.readouterr().out

    def test_init_config_refuses_overwrite(self, tmp_path, capsys) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("llm:\n  enabled: false\n")

        assert main(["init-config", str(path)]) == 1
        assert path.read_text() == "llm:\n  enabled: false\n"

    def test_invalid_config(self, tmp_path, clean_env, capsys) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("llm:\n  enabled: true\n  provider: bard\n")

        assert main(["-c", str(path), "prompt"]) == 1
        assert "Invalid config" in capsys.readouterr().out

    def test_prompt(self, config_path, capsys) -> None:
        assert main(["-c", str(config_path), "prompt"]) == 0

        out = capsys.readouterr().out
        assert "TOON" in out
        assert "Efectivo" in out


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_csv_table(self, tmp_path, config_path, sample_csv, capsys) -> None:
        statement = tmp_path / "statement.csv"
        statement.write_text(sample_csv, encoding="utf-8")

        assert main(["-c", str(config_path), "analyze", str(statement)]) == 0

        out = capsys.readouterr().out
        assert "Coffee shop" in out
        assert "Transactions: 3" in out

    def test_csv_json(self, tmp_path, config_path, sample_csv, capsys) -> None:
        statement = tmp_path / "statement.csv"
        statement.write_text(sample_csv, encoding="utf-8")

        assert main(["-c", str(config_path), "analyze", str(statement), "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["succeeded"] is True
        assert data["format"] == "csv"
        assert len(data["transactions"]) == 3
        assert data["transactions"][0]["amount"] == "500.00"
        assert data["summary"]["total_transactions"] == 3

    def test_raw_text(self, tmp_path, config_path, capsys) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("no amounts in here\n", encoding="utf-8")

        assert main(["-c", str(config_path), "analyze", str(notes), "--raw-text"]) == 0
        assert "no amounts in here" in capsys.readouterr().out

    def test_no_transactions(self, tmp_path, config_path, capsys) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("no amounts in here\n", encoding="utf-8")

        assert main(["-c", str(config_path), "analyze", str(notes)]) == 1
        assert "No transactions found" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, config_path, capsys) -> None:
        assert main(["-c", str(config_path), "analyze", str(tmp_path / "missing.csv")]) == 1


class TestToonCommand:
    """Tests for the toon command."""

    def test_block_output(self, config_path, capsys) -> None:
        assert main(["-c", str(config_path), "toon", "1000 palito de agua"]) == 0

        out = capsys.readouterr().out
        assert "tx[1]{fecha,monto,moneda,origen,destino,categoria,nota}:" in out
        assert "1000.00,ARS,Efectivo" in out

    def test_json_output(self, config_path, capsys) -> None:
        assert main(["-c", str(config_path), "toon", "1k pan", "50usd amazon", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["strategy"] == "pattern"
        assert [tx["currency"] for tx in data["transactions"]] == ["ARS", "USD"]
        assert "prepared" not in data

    def test_with_registry(self, config_path, registry_path, capsys) -> None:
        args = ["-c", str(config_path), "toon", "1000 pan bbva", "--registry", str(registry_path)]

        assert main(args) == 0

        out = capsys.readouterr().out
        assert "1 of 1 ready to insert" in out

    def test_registry_json(self, config_path, registry_path, capsys) -> None:
        args = [
            "-c", str(config_path), "toon", "1000 pan", "--registry", str(registry_path), "--json"
        ]

        assert main(args) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["prepared"][0]["source_account_id"] == 2
        assert data["prepared"][0]["category_id"] == 10

    def test_missing_registry(self, tmp_path, config_path, capsys) -> None:
        args = ["-c", str(config_path), "toon", "1000 pan", "--registry", str(tmp_path / "x.yaml")]

        assert main(args) == 1
        assert "Failed to load registry" in capsys.readouterr().out

    def test_nothing_parsed(self, config_path, capsys) -> None:
        assert main(["-c", str(config_path), "toon", "hello world"]) == 1

    @patch("ledger_intake.runner.main.LLMService")
    def test_llm_client_closed(self, mock_service_cls, config_path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("INTAKE_LLM_ENABLED", "true")
        mock_service = MagicMock()
        mock_service.is_enabled = True
        mock_service.chat.return_value = (
            "tx[1]{fecha,monto,moneda,origen,destino,categoria,nota}:\n"
            "  2025-12-01,1000.00,ARS,Efectivo,Kiosco,Alimentación,Palito de agua"
        )
        mock_service_cls.return_value = mock_service

        assert main(["-c", str(config_path), "toon", "1000 palito de agua"]) == 0

        assert "Kiosco" in capsys.readouterr().out
        mock_service.close.assert_called_once()

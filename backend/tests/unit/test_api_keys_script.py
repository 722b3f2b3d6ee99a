"""Tests for scripts.api_keys."""

from unittest.mock import patch

import pytest

from scripts.api_keys import _clean_env_file, main, migrate


@pytest.fixture
def env_file(tmp_path):
    p = tmp_path / ".env"
    p.write_text(
        "# Database config\n"
        "DATABASE_URL=sqlite:///./portfolio.db\n"
        "LOG_LEVEL=DEBUG\n"
        "\n"
        "# Explorers\n"
        "ETHERSCAN_API_KEY=eth-key\n"
        "BSCSCAN_API_KEY=\n"
        "COINGECKO_API_KEY=cg-key\n"
    )
    return p


class TestMigrate:
    def test_stores_non_empty_keys(self, env_file, capsys):
        with (
            patch("scripts.api_keys.set_credential", return_value=True) as mock_set,
            patch("scripts.api_keys.get_credential", return_value=None),
        ):
            code = migrate(env_file)

        assert code == 0
        assert {call.args for call in mock_set.call_args_list} == {
            ("COINGECKO_API_KEY", "cg-key"),
            ("ETHERSCAN_API_KEY", "eth-key"),
        }
        assert "Stored in keychain (2)" in capsys.readouterr().out

    def test_skips_keys_already_stored(self, env_file, capsys):
        with (
            patch("scripts.api_keys.set_credential", return_value=True) as mock_set,
            patch("scripts.api_keys.get_credential", side_effect=lambda k: "eth-key" if k == "ETHERSCAN_API_KEY" else None),
        ):
            migrate(env_file)

        assert [call.args[0] for call in mock_set.call_args_list] == ["COINGECKO_API_KEY"]
        assert "Already in keychain (1)" in capsys.readouterr().out

    def test_failure_sets_exit_code(self, env_file):
        with (
            patch("scripts.api_keys.set_credential", return_value=False),
            patch("scripts.api_keys.get_credential", return_value=None),
        ):
            assert migrate(env_file) == 1

    def test_clean_removes_only_migrated_lines(self, env_file):
        with (
            patch("scripts.api_keys.set_credential", return_value=True),
            patch("scripts.api_keys.get_credential", return_value=None),
        ):
            migrate(env_file, clean=True)

        content = env_file.read_text()
        assert "ETHERSCAN_API_KEY" not in content
        assert "COINGECKO_API_KEY" not in content
        assert "BSCSCAN_API_KEY=\n" in content
        assert "DATABASE_URL=sqlite:///./portfolio.db" in content
        assert "# Explorers" in content

    def test_missing_env_file(self, tmp_path, capsys):
        assert migrate(tmp_path / "nope.env") == 1
        assert "No .env file found" in capsys.readouterr().out


class TestCleanEnvFile:
    def test_matches_whole_key_only(self, tmp_path):
        p = tmp_path / ".env"
        p.write_text("ETHERSCAN_API_KEY=a\nETHERSCAN_API_KEY_OLD=b\n")

        _clean_env_file(p, ["ETHERSCAN_API_KEY"])

        assert p.read_text() == "ETHERSCAN_API_KEY_OLD=b\n"


class TestMain:
    def test_set_prompts_for_value(self):
        with (
            patch("scripts.api_keys.getpass.getpass", return_value="secret") as mock_prompt,
            patch("scripts.api_keys.set_credential", return_value=True) as mock_set,
        ):
            assert main(["set", "ETHERSCAN_API_KEY"]) == 0

        mock_prompt.assert_called_once()
        mock_set.assert_called_once_with("ETHERSCAN_API_KEY", "secret")

    def test_delete(self):
        with patch("scripts.api_keys.delete_credential", return_value=False) as mock_delete:
            assert main(["delete", "COINGECKO_API_KEY"]) == 1
        mock_delete.assert_called_once_with("COINGECKO_API_KEY")

    def test_unknown_key_rejected(self):
        with pytest.raises(SystemExit):
            main(["set", "DATABASE_URL"])

    def test_migrate_with_env_file(self, env_file):
        with (
            patch("scripts.api_keys.set_credential", return_value=True) as mock_set,
            patch("scripts.api_keys.get_credential", return_value=None),
        ):
            assert main(["migrate", "--env-file", str(env_file)]) == 0
        assert mock_set.call_count == 2

"""
Tests for the command line, configuration and platform gate.

Tests:
- mine / verify / list / reset commands and their exit codes
- Environment configuration
- Apple Silicon start-up gate
"""

import json
import pytest

import src.main as cli
from src.blockchain.exceptions import InvalidArgument
from src.config import ChainConfig, DEFAULT_DATA_DIR, DEFAULT_DATA
from src.platform_check import (
    UnsupportedPlatform, is_apple_silicon, require_supported_platform, REFUSAL_MESSAGE
)
from src.storage.chain_store import ChainStore


def run(data_dir, *args):
    return cli.main(["--skip-platform-check", "--data-dir", str(data_dir), *args])


class TestCommands:
    """Tests for the CLI commands."""

    def test_mine_and_verify(self, tmp_path, capsys):
        """Mining then verifying succeeds."""
        assert run(tmp_path, "mine", "-b", "3", "-l", "1", "-d", "hello") == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "Mined 3 block(s)." in out
        assert "Block 2 |" in out

        assert run(tmp_path, "verify") == cli.EXIT_OK
        assert "Chain valid (3 blocks)" in capsys.readouterr().out

    def test_mine_default_data(self, tmp_path):
        """Default payload matches the configured default."""
        run(tmp_path, "mine", "-b", "1", "-l", "0")
        assert ChainStore(tmp_path).load()[0].data == DEFAULT_DATA

    def test_mine_resumes(self, tmp_path):
        """A second run continues the stored chain."""
        run(tmp_path, "mine", "-b", "2", "-l", "1")
        run(tmp_path, "mine", "-b", "1", "-l", "1")

        blocks = ChainStore(tmp_path).load()
        assert [b.index for b in blocks] == [0, 1, 2]
        assert blocks[2].previous_hash == blocks[1].hash

    def test_mine_with_ramp(self, tmp_path):
        """--ramp-every raises the recorded difficulty."""
        run(tmp_path, "mine", "-b", "3", "-l", "0", "--ramp-every", "2")
        blocks = ChainStore(tmp_path).load()
        assert [b.difficulty for b in blocks] == [0, 0, 1]

    def test_verify_detects_tampering(self, tmp_path, capsys):
        """A tampered record makes verify exit with the integrity code."""
        run(tmp_path, "mine", "-b", "3", "-l", "1")
        path = ChainStore(tmp_path).path_for(1)
        record = json.loads(path.read_text())
        record["data"] = "tampered"
        path.write_text(json.dumps(record))
        capsys.readouterr()

        assert run(tmp_path, "verify") == cli.EXIT_INTEGRITY
        assert "Chain broken at block 1" in capsys.readouterr().out

    def test_verify_with_policy(self, tmp_path):
        """verify --difficulty applies a uniform policy."""
        run(tmp_path, "mine", "-b", "1", "-l", "1")
        assert run(tmp_path, "verify", "--difficulty", "0") == cli.EXIT_OK
        assert run(tmp_path, "verify", "--difficulty", "64") == cli.EXIT_INTEGRITY

    def test_list(self, tmp_path, capsys):
        """list prints one line per block."""
        run(tmp_path, "mine", "-b", "2", "-l", "0")
        capsys.readouterr()

        assert run(tmp_path, "list") == cli.EXIT_OK
        lines = [l for l in capsys.readouterr().out.splitlines() if l.startswith("Block")]
        assert len(lines) == 2

    def test_list_empty(self, tmp_path, capsys):
        """list on an empty store says so."""
        assert run(tmp_path / "none", "list") == cli.EXIT_OK
        assert "No blocks stored." in capsys.readouterr().out

    def test_reset_with_yes(self, tmp_path, capsys):
        """reset --yes removes every block."""
        run(tmp_path, "mine", "-b", "2", "-l", "0")
        assert run(tmp_path, "reset", "--yes") == cli.EXIT_OK
        assert "Removed 2 block(s)." in capsys.readouterr().out
        assert ChainStore(tmp_path).load() == []

    def test_reset_asks_first(self, tmp_path, monkeypatch, capsys):
        """Without --yes, declining keeps the blocks."""
        run(tmp_path, "mine", "-b", "1", "-l", "0")
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert run(tmp_path, "reset") == cli.EXIT_OK
        assert "Aborted." in capsys.readouterr().out
        assert len(ChainStore(tmp_path).load()) == 1

    def test_reset_empty_store(self, tmp_path):
        """reset on an empty store succeeds."""
        assert run(tmp_path / "none", "reset", "--yes") == cli.EXIT_OK


class TestExitCodes:
    """Errors map to exit codes."""

    def test_negative_difficulty(self, tmp_path, capsys):
        """Negative difficulty exits with the invalid-argument code."""
        assert run(tmp_path, "mine", "-l", "-1") == cli.EXIT_INVALID_ARGUMENT
        assert "Invalid argument" in capsys.readouterr().err

    def test_negative_block_count(self, tmp_path):
        """Negative block count exits with the invalid-argument code."""
        assert run(tmp_path, "mine", "-b", "-2", "-l", "0") == cli.EXIT_INVALID_ARGUMENT

    def test_corrupt_record(self, tmp_path, capsys):
        """A corrupt record exits with the storage code."""
        run(tmp_path, "mine", "-b", "1", "-l", "0")
        ChainStore(tmp_path).path_for(0).write_text("{broken")

        assert run(tmp_path, "list") == cli.EXIT_STORAGE
        assert "Storage error" in capsys.readouterr().err

    def test_missing_command(self, tmp_path):
        """argparse exits with status 2 when no command is given."""
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--skip-platform-check", "--data-dir", str(tmp_path)])
        assert excinfo.value.code == 2

    def test_bad_environment(self, monkeypatch, tmp_path):
        """Malformed environment configuration exits with status 2."""
        monkeypatch.setenv("MCHAIN_DIFFICULTY", "hard")
        assert run(tmp_path, "list") == cli.EXIT_INVALID_ARGUMENT

    def test_interrupt(self, tmp_path, monkeypatch):
        """Ctrl-C during mining exits with 130 and keeps finished blocks."""
        run(tmp_path, "mine", "-b", "1", "-l", "0")

        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr("src.integration.chain_service.mine_block", interrupted)
        assert run(tmp_path, "mine", "-b", "1", "-l", "0") == cli.EXIT_INTERRUPTED
        assert len(ChainStore(tmp_path).load()) == 1


class TestPlatformGate:
    """Tests for the Apple Silicon gate."""

    def test_gate_refuses(self, tmp_path, monkeypatch, capsys):
        """Without Apple Silicon the CLI exits 1 before touching the store."""
        def refuse():
            raise UnsupportedPlatform(REFUSAL_MESSAGE)

        monkeypatch.setattr(cli, "require_supported_platform", refuse)
        data_dir = tmp_path / "chain"

        assert cli.main(["--data-dir", str(data_dir), "mine", "-b", "1", "-l", "0"]) == cli.EXIT_PLATFORM
        assert REFUSAL_MESSAGE in capsys.readouterr().err
        assert not data_dir.exists()

    def test_gate_allows(self, tmp_path, monkeypatch):
        """On Apple Silicon the command runs."""
        monkeypatch.setattr(cli, "require_supported_platform", lambda: None)
        assert cli.main(["--data-dir", str(tmp_path), "list"]) == cli.EXIT_OK

    def test_skip_via_environment(self, tmp_path, monkeypatch):
        """MCHAIN_SKIP_PLATFORM_CHECK disables the gate."""
        def refuse():
            raise UnsupportedPlatform(REFUSAL_MESSAGE)

        monkeypatch.setattr(cli, "require_supported_platform", refuse)
        monkeypatch.setenv("MCHAIN_SKIP_PLATFORM_CHECK", "1")
        assert cli.main(["--data-dir", str(tmp_path), "list"]) == cli.EXIT_OK

    def test_apple_brand(self):
        """An Apple M brand string passes."""
        assert is_apple_silicon(lambda: "Apple M2 Pro")
        require_supported_platform(lambda: "Apple M1")

    def test_intel_brand(self):
        """Other brand strings fail."""
        assert not is_apple_silicon(lambda: "Intel(R) Core(TM) i7-9750H CPU @ 2.60GHz")
        with pytest.raises(UnsupportedPlatform):
            require_supported_platform(lambda: "Intel(R) Core(TM) i7")

    def test_no_sysctl(self):
        """A missing sysctl counts as unsupported."""
        assert not is_apple_silicon(lambda: None)


class TestConfig:
    """Tests for environment configuration."""

    def test_defaults(self):
        """An empty environment yields the defaults."""
        config = ChainConfig.from_env({})
        assert config.data_dir == DEFAULT_DATA_DIR
        assert config.difficulty == 4
        assert config.skip_platform_check is False
        assert config.log_level == "INFO"

    def test_overrides(self):
        """Every setting can come from the environment."""
        config = ChainConfig.from_env({
            "MCHAIN_DATA_DIR": "/tmp/chain",
            "MCHAIN_DIFFICULTY": "2",
            "MCHAIN_SKIP_PLATFORM_CHECK": "yes",
            "MCHAIN_LOG_LEVEL": "debug",
        })
        assert config.data_dir == "/tmp/chain"
        assert config.difficulty == 2
        assert config.skip_platform_check is True
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("env", [
        {"MCHAIN_DIFFICULTY": "abc"},
        {"MCHAIN_DIFFICULTY": "-1"},
        {"MCHAIN_DIFFICULTY": "65"},
        {"MCHAIN_SKIP_PLATFORM_CHECK": "maybe"},
        {"MCHAIN_LOG_LEVEL": "LOUD"},
    ])
    def test_malformed(self, env):
        """Malformed values raise InvalidArgument."""
        with pytest.raises(InvalidArgument):
            ChainConfig.from_env(env)

    def test_env_difficulty_is_cli_default(self, tmp_path, monkeypatch):
        """MCHAIN_DIFFICULTY sets the default for mine -l."""
        monkeypatch.setenv("MCHAIN_DIFFICULTY", "2")
        run(tmp_path, "mine", "-b", "1")
        assert ChainStore(tmp_path).load()[0].difficulty == 2

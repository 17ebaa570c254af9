from tests.integration.conftest import run_cli


class TestBasicCLI:
    def test_help(self, cli_exe):
        result = run_cli(cli_exe, ["--help"])
        assert result.returncode == 0
        assert "stablepack" in result.stdout
        assert "Usage" in result.stdout

    def test_version(self, cli_exe):
        result = run_cli(cli_exe, ["--version"])
        assert result.returncode == 0
        assert "stablepack version" in result.stdout

    def test_log_dir(self, cli_exe):
        result = run_cli(cli_exe, ["--log-dir"])
        assert result.returncode == 0
        assert "stablepack" in result.stdout

    def test_build_help(self, cli_exe):
        result = run_cli(cli_exe, ["build", "--help"])
        assert result.returncode == 0
        assert "--no-cache" in result.stdout

from tests.integration.conftest import run_cli


class TestConfigCommand:
    """Test the config command with various scenarios."""

    def test_config_help(self, cli_exe, temp_dir):
        result = run_cli(cli_exe, ["config", "--help"], cwd=temp_dir)
        assert result.returncode == 0
        assert "configuration" in result.stdout.lower()

    def test_config_set_local(self, cli_exe, temp_dir):
        result = run_cli(cli_exe, ["config", "out_dir", "public"], cwd=temp_dir)
        assert result.returncode == 0

        config_file = temp_dir / "stablepackconfig.toml"
        assert config_file.exists()
        assert 'out_dir = "public"' in config_file.read_text()

    def test_local_config_is_used_by_build(self, cli_exe, project):
        assert run_cli(cli_exe, ["config", "out_dir", "public"], cwd=project).returncode == 0
        result = run_cli(cli_exe, ["build", "graph.json"], cwd=project)
        assert result.returncode == 0, result.stderr
        assert (project / "public" / "manifest.json").exists()

    def test_config_unknown_key(self, cli_exe, temp_dir):
        result = run_cli(cli_exe, ["config", "nonexistent", "x"], cwd=temp_dir)
        assert result.returncode == 1
        assert "Unknown configuration key" in result.stdout

    def test_config_env_scope_prints_instructions(self, cli_exe, temp_dir):
        result = run_cli(
            cli_exe, ["config", "mode", "development", "--scope", "env"], cwd=temp_dir
        )
        assert result.returncode == 0
        assert "stablepack_mode" in result.stdout
        assert not (temp_dir / "stablepackconfig.toml").exists()

    def test_invalid_config_value_fails_build(self, cli_exe, project):
        (project / "stablepackconfig.toml").write_text('workers = "many"\n')
        result = run_cli(cli_exe, ["build", "graph.json"], cwd=project)
        assert result.returncode == 1

    def test_show_all(self, cli_exe, temp_dir):
        (temp_dir / "stablepackconfig.toml").write_text('mode = "development"\n')
        result = run_cli(cli_exe, ["config"], cwd=temp_dir)
        assert result.returncode == 0
        assert "Configuration Options" in result.stdout

"""Tests for configuration loading."""

from pathlib import Path

from clinic_shipping.config import DEFAULT_DANE_FILE, ShippingConfig


class TestShippingConfig:
    """Tests for ShippingConfig."""

    def test_from_env(self, monkeypatch, tmp_path):
        """Test values read from the environment."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ENVIOCLICK_API_KEY", "secret")
        monkeypatch.setenv("ENVIOCLICK_SANDBOX", "true")
        monkeypatch.setenv("REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("SYNC_CONCURRENCY", "3")
        monkeypatch.setenv("ORDER_STORE_FILE", "store/orders.json")

        config = ShippingConfig.from_env()

        assert config.envioclick_api_key == "secret"
        assert config.envioclick_sandbox is True
        assert config.request_timeout == 5.0
        assert config.sync_concurrency == 3
        assert config.order_store_file == Path("store/orders.json")
        assert config.dane_codes_file == DEFAULT_DANE_FILE

    def test_env_file(self, monkeypatch, tmp_path):
        """Test loading an explicit env file."""
        for name in ("ENVIOCLICK_API_KEY", "ORIGIN_COMPANY"):
            # load_dotenv exports into os.environ; undo restores the original
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
        env_file = tmp_path / "config.env"
        env_file.write_text("ENVIOCLICK_API_KEY=from-file\nORIGIN_COMPANY=Clinica Norte\n")

        config = ShippingConfig.from_env(str(env_file))

        assert config.envioclick_api_key == "from-file"
        assert config.origin_company == "Clinica Norte"
        assert config.origin_contact["company"] == "Clinica Norte"

    def test_validate(self):
        """Test validation errors."""
        assert ShippingConfig(envioclick_api_key="k").validate() == []

        errors = ShippingConfig(sync_concurrency=0, origin_dane_code="44001").validate()

        assert "ENVIOCLICK_API_KEY is required" in errors
        assert "SYNC_CONCURRENCY must be at least 1" in errors
        assert "ORIGIN_DANE_CODE must have 8 digits" in errors

    def test_ensure_directories(self, tmp_path):
        config = ShippingConfig(
            order_store_file=tmp_path / "data" / "orders.json",
            log_file=str(tmp_path / "logs" / "shipping.log"),
        )

        config.ensure_directories()

        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "logs").is_dir()

"""配置读取测试"""

from pathlib import Path

from chronos.core import config


class TestCoreConfig:
    def test_defaults(self, monkeypatch):
        for name in ("CHRONOS_STORE_PATH", "CHRONOS_STORE_BACKEND", "CHRONOS_PORT", "CHRONOS_HOST"):
            monkeypatch.delenv(name, raising=False)
        assert config.get_message_store_path() == Path("./messages.json")
        assert config.get_message_store_backend() == "json"
        assert config.get_listen_port() == 3001
        assert config.get_listen_host() == "0.0.0.0"

    def test_overrides(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("CHRONOS_STORE_PATH", str(tmp_path / "m.db"))
        monkeypatch.setenv("CHRONOS_STORE_BACKEND", " SQLite ")
        monkeypatch.setenv("CHRONOS_PORT", "8080")
        monkeypatch.setenv("CHRONOS_SKILL_DOC_PATH", str(tmp_path / "skill.md"))
        assert config.get_message_store_path() == tmp_path / "m.db"
        assert config.get_message_store_backend() == "sqlite"
        assert config.get_listen_port() == 8080
        assert config.get_skill_doc_path() == tmp_path / "skill.md"

    def test_invalid_port_falls_back(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_PORT", "not-a-port")
        assert config.get_listen_port() == 3001

    def test_protocol_constants(self):
        assert config.COMMIT_WINDOW_S == 60
        assert config.REVEAL_WINDOW_S == 60
        assert config.MAX_CONTENT_LENGTH == 2000
        assert config.RATE_LIMIT_MAX == 20
        assert config.RATE_LIMIT_WINDOW_S == 60

from pathlib import Path

import pytest

from diagrams.config import Settings, _parse_optional_int, load_settings

ENV_VARS = (
    "BASE_DIR",
    "DIAGRAM_SRC_DIR",
    "DIAGRAM_GLOB",
    "DIAGRAM_OUT_DIR",
    "DIAGRAM_FORMAT",
    "MERMAID_CLI",
    "MERMAID_THEME",
    "MERMAID_BACKGROUND",
    "RENDER_TIMEOUT_SEC",
    "PNG_WIDTH",
    "LOG_FILE",
    "LOG_LEVEL",
    "LOG_MAX_BYTES",
    "LOG_BACKUPS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_parse_optional_int():
    assert _parse_optional_int("X", None) is None
    assert _parse_optional_int("X", "  ") is None
    assert _parse_optional_int("X", "30") == 30
    with pytest.raises(RuntimeError, match="X must be an integer"):
        _parse_optional_int("X", "3s")
    with pytest.raises(RuntimeError, match="positive"):
        _parse_optional_int("X", "0")


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    s = load_settings()
    assert s.base_dir == tmp_path.resolve()
    assert s.source_dir == tmp_path.resolve() / "src" / "mermaid"
    assert s.assets_dir == tmp_path.resolve() / "src" / "assets"
    assert s.pattern == "*.mmd"
    assert s.extension == ".svg"
    assert s.renderer == "mmdc"
    assert s.theme == "dark"
    assert s.background == "rgb(23, 23, 26)"
    assert s.command_timeout_sec is None
    assert s.png_width is None
    assert s.log_file is None
    assert s.log_level == "INFO"


def test_load_settings_parses_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("BASE_DIR", str(tmp_path))
    monkeypatch.setenv("DIAGRAM_SRC_DIR", "docs/diagrams")
    monkeypatch.setenv("DIAGRAM_OUT_DIR", "public/img")
    monkeypatch.setenv("DIAGRAM_FORMAT", ".PNG")
    monkeypatch.setenv("MERMAID_CLI", "/opt/bin/mmdc")
    monkeypatch.setenv("MERMAID_THEME", "forest")
    monkeypatch.setenv("MERMAID_BACKGROUND", "transparent")
    monkeypatch.setenv("RENDER_TIMEOUT_SEC", "60")

    log_file = tmp_path / "logs" / "build.log"
    monkeypatch.setenv("LOG_FILE", str(log_file))
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_MAX_BYTES", "1024")
    monkeypatch.setenv("LOG_BACKUPS", "3")

    s = load_settings()
    assert s.source_dir == tmp_path.resolve() / "docs" / "diagrams"
    assert s.assets_dir == tmp_path.resolve() / "public" / "img"
    assert s.output_format == "png"
    assert s.extension == ".png"
    assert s.renderer == "/opt/bin/mmdc"
    assert s.theme == "forest"
    assert s.background == "transparent"
    assert s.command_timeout_sec == 60
    assert s.log_file == log_file.resolve()
    assert s.log_level == "DEBUG"
    assert s.log_max_bytes == 1024
    assert s.log_backups == 3


def test_load_settings_rejects_unknown_format(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DIAGRAM_FORMAT", "gif")
    with pytest.raises(RuntimeError, match="DIAGRAM_FORMAT"):
        load_settings()


def test_load_settings_rejects_bad_png_width(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PNG_WIDTH", "wide")
    with pytest.raises(RuntimeError, match="PNG_WIDTH"):
        load_settings()


def test_absolute_dirs_ignore_base_dir(tmp_path: Path):
    s = Settings(base_dir=tmp_path, src_dir=Path("/srv/mermaid"), out_dir=Path("rel"))
    assert s.source_dir == Path("/srv/mermaid")
    assert s.assets_dir == tmp_path.resolve() / "rel"


def test_settings_validates_format():
    with pytest.raises(ValueError):
        Settings(output_format="bmp")


def test_load_settings_rejects_bad_log_numbers(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LOG_BACKUPS", "three")
    with pytest.raises(RuntimeError, match="LOG_BACKUPS must be an integer"):
        load_settings()

    monkeypatch.setenv("LOG_BACKUPS", "-1")
    with pytest.raises(RuntimeError, match="LOG_BACKUPS"):
        load_settings()

    monkeypatch.delenv("LOG_BACKUPS")
    monkeypatch.setenv("LOG_MAX_BYTES", "1MB")
    with pytest.raises(RuntimeError, match="LOG_MAX_BYTES must be an integer"):
        load_settings()


def test_load_settings_allows_zero_log_backups(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LOG_BACKUPS", "0")
    assert load_settings().log_backups == 0

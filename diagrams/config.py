import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

SUPPORTED_FORMATS = frozenset({"svg", "png", "pdf"})

# Settings field -> environment variable, for error messages
ENV_NAMES = {
    "base_dir": "BASE_DIR",
    "src_dir": "DIAGRAM_SRC_DIR",
    "pattern": "DIAGRAM_GLOB",
    "out_dir": "DIAGRAM_OUT_DIR",
    "output_format": "DIAGRAM_FORMAT",
    "renderer": "MERMAID_CLI",
    "theme": "MERMAID_THEME",
    "background": "MERMAID_BACKGROUND",
    "log_file": "LOG_FILE",
    "log_level": "LOG_LEVEL",
}


def _parse_optional_int(name: str, raw: str | None, minimum: int = 1) -> int | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None
    if value < minimum:
        qualifier = "positive" if minimum == 1 else f">= {minimum}"
        raise RuntimeError(f"{name} must be {qualifier}, got {value}.")
    return value


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_dir: Path = Path(".")
    src_dir: Path = Path("src/mermaid")
    pattern: str = "*.mmd"
    out_dir: Path = Path("src/assets")
    output_format: str = "svg"
    # Renderer invocation
    renderer: str = "mmdc"
    theme: str = "dark"
    background: str = "rgb(23, 23, 26)"
    command_timeout_sec: float | None = None
    png_width: int | None = None
    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024
    log_backups: int = 5

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @field_validator("base_dir", mode="before")
    @classmethod
    def _ensure_path(cls, v: Path | str) -> Path:
        return Path(v or ".").expanduser().resolve()

    @field_validator("log_file", mode="before")
    @classmethod
    def _ensure_log_path(cls, v: str | Path | None) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalize_format(cls, v: str) -> str:
        fmt = (v or "svg").strip().lower().lstrip(".")
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"unsupported output format {v!r}")
        return fmt

    @property
    def source_dir(self) -> Path:
        """Directory scanned for diagram definitions."""
        return self.base_dir / self.src_dir

    @property
    def assets_dir(self) -> Path:
        """Directory the renderer writes images into."""
        return self.base_dir / self.out_dir

    @property
    def extension(self) -> str:
        return f".{self.output_format}"


def load_settings() -> Settings:
    timeout = _parse_optional_int("RENDER_TIMEOUT_SEC", os.getenv("RENDER_TIMEOUT_SEC"))
    png_width = _parse_optional_int("PNG_WIDTH", os.getenv("PNG_WIDTH"))

    # Logging
    log_level = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
    log_max_bytes = _parse_optional_int("LOG_MAX_BYTES", os.getenv("LOG_MAX_BYTES"))
    log_backups = _parse_optional_int("LOG_BACKUPS", os.getenv("LOG_BACKUPS"), minimum=0)

    try:
        return Settings(
            base_dir=os.getenv("BASE_DIR", "."),
            src_dir=Path(os.getenv("DIAGRAM_SRC_DIR", "src/mermaid") or "src/mermaid"),
            pattern=(os.getenv("DIAGRAM_GLOB", "*.mmd") or "*.mmd").strip(),
            out_dir=Path(os.getenv("DIAGRAM_OUT_DIR", "src/assets") or "src/assets"),
            output_format=os.getenv("DIAGRAM_FORMAT", "svg"),
            renderer=(os.getenv("MERMAID_CLI", "mmdc") or "mmdc").strip(),
            theme=(os.getenv("MERMAID_THEME", "dark") or "dark").strip(),
            background=(
                os.getenv("MERMAID_BACKGROUND", "rgb(23, 23, 26)") or "rgb(23, 23, 26)"
            ).strip(),
            command_timeout_sec=timeout,
            png_width=png_width,
            log_file=os.getenv("LOG_FILE", "").strip(),
            log_level=log_level,
            log_max_bytes=log_max_bytes or 5 * 1024 * 1024,
            log_backups=5 if log_backups is None else log_backups,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{ENV_NAMES.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
            for err in e.errors()
        )
        raise RuntimeError(f"Invalid configuration: {problems}") from None

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import jsonschema

from ..infra.errors import ValidationError
from ..infra.models import Credentials, CryptoLayout, LibraryManifest
from ..utils.yamlio import read_yaml


DEFAULT_CONFIG_REL_PATH = Path("config/crypto.yml")
CONFIG_ENV_VAR = "CQ_CRYPTO_CONFIG"

# Adapter kind enums are strict. Any unknown kind is rejected.
ALLOWED_EXTRACTOR_KINDS: Tuple[str, ...] = ("zipfile", "unzip")
ALLOWED_INSPECTOR_KINDS: Tuple[str, ...] = ("classfile", "javap")

DEFAULT_ENTROPY_COMMAND: Tuple[str, ...] = ("rngd", "-r", "/dev/urandom", "-o", "/dev/random", "-f")

PLACEHOLDER_VALUES = ("", "REPLACE_ME")


@dataclass(frozen=True)
class ToolPaths:
    java: str = "java"
    javac: str = "javac"
    javap: str = "javap"
    unzip: str = "unzip"


@dataclass(frozen=True)
class AemLibsSettings:
    """Where the vendor crypto libraries live inside the primary artifact."""

    expected_count: int = 5
    standalone_filter: str = "static/app/*"
    crypto_bundle_filter: str = "resources/install/0/com.adobe.granite.crypto*.jar"
    crypto_bundle_pattern: str = r"com\.adobe\.granite\.crypto.+"
    bundle_libs_filter: str = "META-INF/lib/*"


@dataclass(frozen=True)
class RemoteSettings:
    instance: str
    username: str
    password_env_var: str = "CQ_ADMIN_PASSWORD"

    def credentials(self) -> Credentials:
        password = os.environ.get(self.password_env_var, "")
        if password.strip() in PLACEHOLDER_VALUES:
            raise ValidationError(
                f"Password not populated in env var {self.password_env_var} for instance {self.instance}"
            )
        return Credentials(username=self.username, password=password)


@dataclass(frozen=True)
class CryptoConfig:
    cache_root: Path
    primary_artifact: Path
    jdk_version: str
    decryptor_source: Optional[Path] = None
    extractor: str = "zipfile"
    inspector: str = "classfile"
    http_timeout_s: float = 30.0
    tools: ToolPaths = field(default_factory=ToolPaths)
    entropy_command: Tuple[str, ...] = DEFAULT_ENTROPY_COMMAND
    aem_libs: AemLibsSettings = field(default_factory=AemLibsSettings)
    log_libs: LibraryManifest = field(default_factory=lambda: LibraryManifest(server=""))
    remote: Optional[RemoteSettings] = None

    @property
    def layout(self) -> CryptoLayout:
        return CryptoLayout(cache_root=self.cache_root)


def resolve_config_path(repo_root: Path, cli_path: Optional[str] = None) -> Path:
    """Resolve the crypto config YAML path.

    Precedence:
      1) explicit path argument
      2) CQ_CRYPTO_CONFIG
      3) <repo_root>/config/crypto.yml
    """
    if cli_path and str(cli_path).strip():
        return Path(str(cli_path).strip()).expanduser().resolve()

    env_path = str(os.environ.get(CONFIG_ENV_VAR, "") or "").strip()
    if env_path:
        return Path(env_path).expanduser().resolve()

    return (repo_root / DEFAULT_CONFIG_REL_PATH).resolve()


def _config_schema() -> Dict[str, Any]:
    non_empty = {"type": "string", "minLength": 1}
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "required": ["cache_root", "primary_artifact", "jdk_version"],
        "properties": {
            "cache_root": non_empty,
            "primary_artifact": non_empty,
            "jdk_version": {"type": ["string", "integer"]},
            "decryptor_source": non_empty,
            "extractor": {"type": "string", "enum": list(ALLOWED_EXTRACTOR_KINDS)},
            "inspector": {"type": "string", "enum": list(ALLOWED_INSPECTOR_KINDS)},
            "http_timeout_s": {"type": "number", "exclusiveMinimum": 0},
            "tools": {
                "type": "object",
                "properties": {k: non_empty for k in ("java", "javac", "javap", "unzip")},
                "additionalProperties": False,
            },
            "entropy_command": {"type": "array", "items": non_empty},
            "aem_libs": {
                "type": "object",
                "properties": {
                    "expected_count": {"type": "integer", "minimum": 1},
                    "standalone_filter": non_empty,
                    "crypto_bundle_filter": non_empty,
                    "crypto_bundle_pattern": non_empty,
                    "bundle_libs_filter": non_empty,
                },
                "additionalProperties": False,
            },
            "log_libs": {
                "type": "object",
                "required": ["server", "data"],
                "properties": {
                    "server": non_empty,
                    "data": {
                        "type": "object",
                        "additionalProperties": {"type": "string", "pattern": "^[0-9a-fA-F]{64}$"},
                    },
                },
                "additionalProperties": False,
            },
            "remote": {
                "type": "object",
                "required": ["instance", "username"],
                "properties": {
                    "instance": non_empty,
                    "username": non_empty,
                    "password_env_var": non_empty,
                },
                "additionalProperties": False,
            },
        },
        "additionalProperties": False,
    }


def _resolve_path(base_dir: Path, raw: str) -> Path:
    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = base_dir / p
    return p.resolve()


def parse_crypto_config(data: Dict[str, Any], *, base_dir: Path) -> CryptoConfig:
    """Validate a config mapping and build a CryptoConfig.

    Relative paths are resolved against base_dir.
    """
    try:
        jsonschema.validate(instance=data, schema=_config_schema())
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ValidationError(f"crypto config schema validation failed at {where}: {e.message}") from e

    tools = ToolPaths(**(data.get("tools") or {}))
    aem_libs = AemLibsSettings(**(data.get("aem_libs") or {}))

    log_raw = data.get("log_libs") or {"server": "", "data": {}}
    log_libs = LibraryManifest(
        server=str(log_raw["server"]),
        data={str(k): str(v).lower() for k, v in (log_raw.get("data") or {}).items()},
    )

    remote: Optional[RemoteSettings] = None
    if data.get("remote"):
        remote = RemoteSettings(**data["remote"])

    decryptor_source = data.get("decryptor_source")
    entropy = data.get("entropy_command")

    return CryptoConfig(
        cache_root=_resolve_path(base_dir, data["cache_root"]),
        primary_artifact=_resolve_path(base_dir, data["primary_artifact"]),
        jdk_version=str(data["jdk_version"]),
        decryptor_source=_resolve_path(base_dir, decryptor_source) if decryptor_source else None,
        extractor=str(data.get("extractor", "zipfile")),
        inspector=str(data.get("inspector", "classfile")),
        http_timeout_s=float(data.get("http_timeout_s", 30.0)),
        tools=tools,
        entropy_command=DEFAULT_ENTROPY_COMMAND if entropy is None else tuple(entropy),
        aem_libs=aem_libs,
        log_libs=log_libs,
        remote=remote,
    )


def load_crypto_config(repo_root: Path, cli_path: Optional[str] = None) -> CryptoConfig:
    """Load and validate the crypto facility config.

    Environment overrides:
      - CQ_CRYPTO_CONFIG (file path)

    Raises:
        ValidationError: if the file is missing or invalid.
    """
    path = resolve_config_path(repo_root, cli_path)
    if not path.exists():
        raise ValidationError(f"crypto config not found: {path}")

    try:
        data = read_yaml(path)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    return parse_crypto_config(data, base_dir=path.parent)

"""
config
======

Settings resolution for a run.

Connection settings for each side (``dev`` is the reference, ``main`` the
target) are resolved field by field from, highest priority first:

1. environment variables ``SCHEMACHECK_<SIDE>_<FIELD>`` (e.g. ``SCHEMACHECK_DEV_HOST``)
2. GitHub Action inputs (``dev-db-host``, ``main-db-password``, ...) when
   running as an action
3. CLI flags (``--dev-host``, ``--main-password``, ...)
4. the YAML config file

Example ``schemacheck.yml``::

    dev:
      host: dev-db.internal
      user: readonly
      database: app
      ssl: true

    main:
      host: prod-db.internal
      port: 3306
      user: readonly
      database: app

    options:
      fail_on_drift: false
      normalize_types: false
      comment: true
      connect_timeout: 10

    table_filter:
      include: ["%"]
      exclude: ["tmp_%", "re:^_gh_ost"]

Passwords are best supplied through the environment
(``SCHEMACHECK_MAIN_PASSWORD``) or action inputs rather than the file.

Every problem is reported as :class:`~schemacheck.errors.ConfigurationError`
before any connection is attempted.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from . import github
from .auth import DEFAULT_CONNECT_TIMEOUT, DEFAULT_PORT, MySQLTarget
from .collectors import TableFilter
from .errors import ConfigurationError
from .utils import as_bool

SIDES = ("dev", "main")
ENV_PREFIX = "SCHEMACHECK"

# field -> action input suffix
INPUT_NAMES = {
    "host": "db-host",
    "port": "db-port",
    "user": "db-user",
    "password": "db-password",
    "database": "db-name",
    "ssl": "db-ssl",
    "ssl_ca": "db-ssl-ca",
}
REQUIRED_FIELDS = ("host", "user", "password", "database")


@dataclass(frozen=True)
class Options:
    """Run-wide switches."""
    fail_on_drift: bool = False
    normalize_types: bool = False
    comment: bool = False
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT


@dataclass(frozen=True)
class Settings:
    """Everything :func:`schemacheck.cli.run` needs."""
    dev: MySQLTarget
    main: MySQLTarget
    options: Options = field(default_factory=Options)
    table_filter: TableFilter = field(default_factory=TableFilter)
    out_dir: Optional[Path] = None
    github: bool = False
    github_token: Optional[str] = field(default=None, repr=False)


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    """Safely get nested dict value with default."""
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def load_config(path: Path) -> Dict[str, Any]:
    """Load YAML config file."""
    if not path.exists():
        raise ConfigurationError(f"config not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"config root must be a mapping: {path}")
    return data


def env_var_name(side: str, field_name: str) -> str:
    return f"{ENV_PREFIX}_{side.upper()}_{field_name.upper()}"


def get_env_var(side: str, field_name: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return ``SCHEMACHECK_<SIDE>_<FIELD>`` if set and non-blank."""
    env = os.environ if env is None else env
    value = env.get(env_var_name(side, field_name), "")
    return value if value != "" else None


def cli_flag(side: str, field_name: str) -> str:
    return f"--{side}-{field_name.replace('_', '-')}"


def _resolve(
    cfg: Dict[str, Any],
    side: str,
    field_name: str,
    overrides: Mapping[str, Any],
    use_inputs: bool,
    env: Optional[Mapping[str, str]],
) -> Any:
    value: Any = get_env_var(side, field_name, env)
    if value is None and use_inputs:
        value = github.get_input(f"{side}-{INPUT_NAMES[field_name]}", env)
    if value is None:
        cli_value = overrides.get(f"{side}_{field_name}")
        if cli_value is not None and cli_value != "":
            value = cli_value
    if value is None:
        value = deep_get(cfg, [side, field_name])
    return value


def _missing(side: str, field_name: str) -> ConfigurationError:
    return ConfigurationError(
        f"missing {side}.{field_name}: set {env_var_name(side, field_name)}, "
        f"pass {cli_flag(side, field_name)}, provide the '{side}-{INPUT_NAMES[field_name]}' "
        f"action input, or add it under '{side}:' in the config file",
        side=side,
    )


def parse_port(value: Any, side: str) -> int:
    if value is None or value == "":
        return DEFAULT_PORT
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid port {value!r}", side=side) from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"port out of range: {port}", side=side)
    return port


def build_target(
    cfg: Dict[str, Any],
    side: str,
    overrides: Mapping[str, Any],
    use_inputs: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> MySQLTarget:
    """Resolve the connection settings of one side.

    Parameters
    ----------
    cfg:
        Parsed YAML config (may be empty).
    side:
        ``"dev"`` or ``"main"``.
    overrides:
        CLI values keyed ``<side>_<field>`` (e.g. ``dev_host``); None means unset.
    use_inputs:
        Also consult GitHub Action inputs.
    env:
        Environment mapping; defaults to ``os.environ``.

    Raises
    ------
    ConfigurationError
        If a required field is missing or a value is malformed.
    """
    values = {f: _resolve(cfg, side, f, overrides, use_inputs, env) for f in INPUT_NAMES}
    for f in REQUIRED_FIELDS:
        if values[f] is None or str(values[f]) == "":
            raise _missing(side, f)

    try:
        ssl_on = as_bool(values["ssl"])
    except ValueError as exc:
        raise ConfigurationError(f"invalid ssl flag: {exc}", side=side) from None

    ssl_ca = values["ssl_ca"]
    return MySQLTarget(
        label=side,
        host=str(values["host"]),
        port=parse_port(values["port"], side),
        user=str(values["user"]),
        password=str(values["password"]),
        database=str(values["database"]),
        ssl=ssl_on,
        ssl_ca=str(ssl_ca) if ssl_ca else None,
    )


def _option(
    cfg: Dict[str, Any],
    name: str,
    cli_value: Any,
    use_inputs: bool,
    env: Optional[Mapping[str, str]],
    default: Any,
) -> Any:
    if use_inputs:
        value = github.get_input(name.replace("_", "-"), env)
        if value is not None:
            return value
    if cli_value is not None:
        return cli_value
    return deep_get(cfg, ["options", name], default)


def read_options(
    cfg: Dict[str, Any],
    args: argparse.Namespace,
    use_inputs: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> Options:
    """Read run options from action inputs, CLI flags and config, in that order."""
    try:
        fail_on_drift = as_bool(_option(cfg, "fail_on_drift", args.fail_on_drift, use_inputs, env, False))
        normalize_types = as_bool(_option(cfg, "normalize_types", args.normalize_types, use_inputs, env, False))
        comment = as_bool(_option(cfg, "comment", args.comment, use_inputs, env, False))
    except ValueError as exc:
        raise ConfigurationError(f"invalid option: {exc}") from None

    timeout = _option(cfg, "connect_timeout", args.connect_timeout, use_inputs, env, DEFAULT_CONNECT_TIMEOUT)
    try:
        connect_timeout = int(timeout)
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid connect_timeout {timeout!r}") from None
    if connect_timeout <= 0:
        raise ConfigurationError(f"connect_timeout must be positive, got {connect_timeout}")

    return Options(
        fail_on_drift=fail_on_drift,
        normalize_types=normalize_types,
        comment=comment,
        connect_timeout=connect_timeout,
    )


def read_table_filter(cfg: Dict[str, Any], args: argparse.Namespace) -> TableFilter:
    """Read include/exclude patterns; CLI patterns extend config patterns."""
    includes = list(deep_get(cfg, ["table_filter", "include"], []) or []) + list(args.include or [])
    excludes = list(deep_get(cfg, ["table_filter", "exclude"], []) or []) + list(args.exclude or [])
    case_sensitive = bool(deep_get(cfg, ["table_filter", "case_sensitive"], False))
    return TableFilter(include=includes, exclude=excludes, case_sensitive=case_sensitive)


def load_settings(args: argparse.Namespace, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve :class:`Settings` from parsed CLI args, environment and config file."""
    env = os.environ if env is None else env
    cfg: Dict[str, Any] = {}
    if args.config:
        cfg = load_config(Path(args.config).resolve())

    use_inputs = bool(args.github) or github.in_github_actions(env)
    overrides = {k: v for k, v in vars(args).items() if k.startswith(SIDES)}

    dev = build_target(cfg, "dev", overrides, use_inputs, env)
    main = build_target(cfg, "main", overrides, use_inputs, env)

    out_dir_value = args.out or cfg.get("out_dir")
    token = (github.get_input("github-token", env) if use_inputs else None) or env.get("GITHUB_TOKEN")

    return Settings(
        dev=dev,
        main=main,
        options=read_options(cfg, args, use_inputs, env),
        table_filter=read_table_filter(cfg, args),
        out_dir=Path(out_dir_value).resolve() if out_dir_value else None,
        github=use_inputs,
        github_token=token,
    )

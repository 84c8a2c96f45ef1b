"""
Configuration loading and validation for MySQL Data Extractor.

Settings are layered, lowest priority first: built-in defaults, environment
variables (``MARIADB_*``, optionally from a ``.env`` file), the YAML config
file, then command line flags.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import yaml

from .models import OrderDirection, SamplingDirectives, TableSample

DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 3306
DEFAULT_TIMEOUT = 300
DEFAULT_BATCH_SIZE = 100
DEFAULT_PROGRESS_INTERVAL = 1000
DEFAULT_OUTPUT_DIR = 'output'
DEFAULT_OUTPUT_PREFIX = 'data-extract'


class ConfigLoader:
    """Loads configuration from YAML file."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError(f"Configuration file '{self.config_path}' must contain a mapping")

        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = os.environ.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self.config.get('logging') or {}


@dataclass(frozen=True)
class SourceSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    user: Optional[str] = None
    password: str = ''
    timeout: int = DEFAULT_TIMEOUT

    @property
    def label(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class OutputSettings:
    directory: str = DEFAULT_OUTPUT_DIR
    prefix: str = DEFAULT_OUTPUT_PREFIX
    batch_size: int = DEFAULT_BATCH_SIZE
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL


@dataclass(frozen=True)
class ExtractionConfig:
    """Every per-run setting of an extraction, in one immutable value."""
    source: SourceSettings = field(default_factory=SourceSettings)
    databases: tuple[str, ...] = ()
    all_databases: bool = False
    all_user_databases: bool = False
    exclude_databases: tuple[str, ...] = ()
    include_tables: tuple[str, ...] = ()
    exclude_tables: tuple[str, ...] = ()
    sampling: SamplingDirectives = field(default_factory=SamplingDirectives)
    output: OutputSettings = field(default_factory=OutputSettings)
    dependency_check: bool = True
    resume: Optional[str] = None

    def validate(self) -> None:
        """Raise ValueError on settings that cannot produce a run."""
        if self.all_databases and self.all_user_databases:
            raise ValueError("Cannot specify both all_databases and all_user_databases")
        if not (self.all_databases or self.all_user_databases or self.databases):
            raise ValueError("Must specify one of: all_databases, all_user_databases, or databases")
        if not self.source.user:
            raise ValueError("A database user is required (--user or MARIADB_USER)")
        if not 0 <= self.sampling.percent <= 100:
            raise ValueError(f"sample percent must be between 0 and 100, got {self.sampling.percent}")
        if self.sampling.max_rows < 0:
            raise ValueError(f"max_rows cannot be negative, got {self.sampling.max_rows}")
        if self.output.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.output.batch_size}")
        if self.output.progress_interval < 1:
            raise ValueError(
                f"progress_interval must be at least 1, got {self.output.progress_interval}"
            )


def get_env_with_default(environ: Mapping[str, str], key: str, default: str) -> str:
    """Environment value, or the default when unset or empty."""
    return environ.get(key) or default


def get_env_int_with_default(environ: Mapping[str, str], key: str, default: int) -> int:
    """Integer environment value; unparsable values fall back to the default."""
    value = environ.get(key)
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def env_defaults(environ: Mapping[str, str]) -> dict[str, Any]:
    """Settings taken from ``MARIADB_*`` environment variables."""
    return {
        'host': get_env_with_default(environ, 'MARIADB_HOST', DEFAULT_HOST),
        'port': get_env_int_with_default(environ, 'MARIADB_PORT', DEFAULT_PORT),
        'user': environ.get('MARIADB_USER') or None,
        'password': environ.get('MARIADB_PASSWORD', ''),
        'timeout': get_env_int_with_default(environ, 'MARIADB_TIMEOUT', DEFAULT_TIMEOUT),
        'prefix': get_env_with_default(environ, 'MARIADB_OUTPUT_PREFIX', DEFAULT_OUTPUT_PREFIX),
        'batch_size': get_env_int_with_default(environ, 'MARIADB_BATCH_SIZE', DEFAULT_BATCH_SIZE),
    }


def parse_sample_value(table: str, value: Any) -> TableSample:
    """
    Parse one per-table sampling directive.

    Accepts a row count (``500``), a percentage (``"10%"``), or a mapping with
    ``rows``, ``where``, ``order_by`` and ``order_direction`` keys.
    """
    if isinstance(value, dict):
        rows = _parse_rows(table, value.get('rows', 0))
        direction = str(value.get('order_direction', 'ASC')).upper()
        return TableSample(
            rows=rows,
            where_clause=value.get('where') or None,
            order_by=value.get('order_by') or None,
            order_direction=OrderDirection(direction)
        )
    return TableSample(rows=_parse_rows(table, value))


def _parse_rows(table: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid sample size for table '{table}': {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Sample size for table '{table}' cannot be negative")
        return value

    text = str(value).strip()
    is_percent = text.endswith('%')
    try:
        rows = int(text[:-1] if is_percent else text)
    except ValueError as e:
        raise ValueError(f"Invalid sample size for table '{table}': {value!r}") from e

    if is_percent:
        if not 1 <= rows <= 100:
            raise ValueError(f"Sample percentage for table '{table}' must be 1-100")
        return -rows
    if rows < 0:
        raise ValueError(f"Sample size for table '{table}' cannot be negative")
    return rows


def parse_sample_tables(specs: list[str]) -> dict[str, TableSample]:
    """Parse ``table:count`` / ``table:N%`` command line directives."""
    samples = {}
    for spec in specs:
        table, sep, count = spec.rpartition(':')
        if not sep or not table or not count:
            raise ValueError(f"Invalid sample directive '{spec}', expected table:count")
        samples[table.strip()] = parse_sample_value(table.strip(), count)
    return samples


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(',') if v.strip())
    return tuple(str(v) for v in value)


def _pick(*values: Any) -> Any:
    """First value that is set, scanning from highest priority."""
    for value in values:
        if value is not None and value != '':
            return value
    return None


def build_config(
    file_config: Optional[dict[str, Any]] = None,
    overrides: Optional[dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ExtractionConfig:
    """
    Merge environment, config file and command line settings.

    Args:
        file_config: Parsed YAML configuration (may be empty).
        overrides: Command line values; None means "not given".
        environ: Environment mapping (defaults to ``os.environ``).
    """
    file_config = file_config or {}
    overrides = overrides or {}
    env = env_defaults(os.environ if environ is None else environ)

    source_cfg = file_config.get('source') or {}
    tables_cfg = file_config.get('tables') or {}
    sampling_cfg = file_config.get('sampling') or {}
    output_cfg = file_config.get('output') or {}

    source = SourceSettings(
        host=_pick(overrides.get('host'), source_cfg.get('host'), env['host']),
        port=int(_pick(overrides.get('port'), source_cfg.get('port'), env['port'])),
        user=_pick(overrides.get('user'), source_cfg.get('user'), env['user']),
        password=_pick(overrides.get('password'), source_cfg.get('password'), env['password']),
        timeout=int(_pick(overrides.get('timeout'), source_cfg.get('timeout'), env['timeout'])),
    )

    table_samples = {
        str(name): parse_sample_value(str(name), value)
        for name, value in (sampling_cfg.get('tables') or {}).items()
    }
    table_samples.update(parse_sample_tables(list(overrides.get('sample_tables') or [])))

    sampling = SamplingDirectives(
        table_samples=table_samples,
        percent=int(_pick(overrides.get('sample_percent'), sampling_cfg.get('percent'), 0)),
        max_rows=int(_pick(overrides.get('max_rows'), sampling_cfg.get('max_rows'), 0)),
    )

    output = OutputSettings(
        directory=str(_pick(overrides.get('output_dir'), output_cfg.get('directory'), DEFAULT_OUTPUT_DIR)),
        prefix=str(_pick(overrides.get('output'), output_cfg.get('prefix'), env['prefix'])),
        batch_size=int(_pick(overrides.get('batch_size'), output_cfg.get('batch_size'), env['batch_size'])),
        progress_interval=int(_pick(
            overrides.get('progress_interval'),
            output_cfg.get('progress_interval'),
            DEFAULT_PROGRESS_INTERVAL
        )),
    )

    if overrides.get('no_foreign_key_check'):
        dependency_check = False
    else:
        dependency_check = bool(file_config.get('dependency_check', True))

    return ExtractionConfig(
        source=source,
        databases=_as_tuple(_pick(overrides.get('databases'), file_config.get('databases'))),
        all_databases=bool(overrides.get('all_databases') or file_config.get('all_databases', False)),
        all_user_databases=bool(
            overrides.get('all_user_databases') or file_config.get('all_user_databases', False)
        ),
        exclude_databases=_as_tuple(
            _pick(overrides.get('exclude_databases'), file_config.get('exclude_databases'))
        ),
        include_tables=_as_tuple(_pick(overrides.get('include_tables'), tables_cfg.get('include'))),
        exclude_tables=_as_tuple(_pick(overrides.get('exclude_tables'), tables_cfg.get('exclude'))),
        sampling=sampling,
        output=output,
        dependency_check=dependency_check,
        resume=overrides.get('resume') or None,
    )

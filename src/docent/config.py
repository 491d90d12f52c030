"""docent configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (DOCENT_EMBEDDING_MODEL, DOCENT_GENERATION_MODEL,
     DOCENT_QUEUE_URL, DOCENT_DB)
  3. Per-project docent.yaml
  4. Global ~/.docent/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".docent"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "docent.yaml"

# Fields that suggest a credential; forbidden in global config.
# Does NOT match legitimate keys like max_tokens or max_indexed_dims.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "embedding",
        "generation",
        "retrieval",
        "correction",
        "rerank",
        "faithfulness",
        "chunking",
        "queue",
        "poller",
        "storage",
        "database",
        "ingest",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Sentence embedding model (docent.yaml: embedding:).

    Attributes:
        model: sentence-transformers model name or local path.
        max_indexed_dims: Vectors longer than this are truncated before
            storage and before search.
        concurrency: Maximum chunk embeddings in flight per document.
    """

    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    max_indexed_dims: int = 2000
    concurrency: int = 4


@dataclass
class GenerationCfg:
    """LLM used for answers and query rewriting (docent.yaml: generation:)."""

    model: str = "gemini/gemini-2.5-flash"
    rewrite_model: str | None = None  # falls back to model
    max_tokens: int = 512


@dataclass
class RetrievalCfg:
    candidates: int = 30


@dataclass
class CorrectionCfg:
    enabled: bool = True
    threshold: float = 0.30


@dataclass
class RerankCfg:
    enabled: bool = True
    model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"
    top_k: int = 6


@dataclass
class FaithfulnessCfg:
    top_k: int = 3


@dataclass
class ChunkingCfg:
    """Recursive/hybrid chunk sizes in characters (docent.yaml: chunking:)."""

    max_chars: int = 1500
    overlap: int = 200
    merge_ceiling: int = 1800


@dataclass
class QueueCfg:
    """Job queue connection (docent.yaml: queue:).

    Attributes:
        url: Redis URL. ``None`` disables the queue (inline + poller only).
        topic: Redis list that carries ingestion jobs.
        probe_timeout: Seconds to wait for PING before falling back to inline.
    """

    url: str | None = None
    topic: str = "pdf-processing"
    probe_timeout: float = 2.0


@dataclass
class PollerCfg:
    interval: float = 30.0
    batch_size: int = 20


@dataclass
class StorageCfg:
    root: str = ".docent/blobs"


@dataclass
class DatabaseCfg:
    path: str = ".docent/docent.db"


@dataclass
class IngestCfg:
    lease_seconds: int = 600


@dataclass
class DocentConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    correction: CorrectionCfg = field(default_factory=CorrectionCfg)
    rerank: RerankCfg = field(default_factory=RerankCfg)
    faithfulness: FaithfulnessCfg = field(default_factory=FaithfulnessCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    queue: QueueCfg = field(default_factory=QueueCfg)
    poller: PollerCfg = field(default_factory=PollerCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: DocentConfig) -> None:
    """Reject values the pipeline cannot run with."""
    ch = cfg.chunking
    if ch.max_chars < 1:
        raise ConfigError(f"chunking.max_chars must be >= 1, got {ch.max_chars}")
    if not 0 <= ch.overlap < ch.max_chars:
        raise ConfigError(
            f"chunking.overlap must be in [0, max_chars), got {ch.overlap}"
        )
    if ch.merge_ceiling < 1:
        raise ConfigError(f"chunking.merge_ceiling must be >= 1, got {ch.merge_ceiling}")
    if not 0.0 <= cfg.correction.threshold <= 1.0:
        raise ConfigError(
            f"correction.threshold must be in [0, 1], got {cfg.correction.threshold}"
        )
    if cfg.embedding.max_indexed_dims < 1:
        raise ConfigError("embedding.max_indexed_dims must be >= 1")
    if cfg.queue.probe_timeout <= 0:
        raise ConfigError("queue.probe_timeout must be > 0")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DocentConfig:
    """Build a *DocentConfig* from a merged raw YAML dict."""
    cfg = DocentConfig()

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            max_indexed_dims=int(e.get("max_indexed_dims", cfg.embedding.max_indexed_dims)),
            concurrency=int(e.get("concurrency", cfg.embedding.concurrency)),
        )

    if "generation" in data:
        g = data["generation"]
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            rewrite_model=g.get("rewrite_model") or cfg.generation.rewrite_model,
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            candidates=int(r.get("candidates", cfg.retrieval.candidates)),
        )

    if "correction" in data:
        c = data["correction"]
        cfg.correction = CorrectionCfg(
            enabled=bool(c.get("enabled", cfg.correction.enabled)),
            threshold=float(c.get("threshold", cfg.correction.threshold)),
        )

    if "rerank" in data:
        rr = data["rerank"]
        cfg.rerank = RerankCfg(
            enabled=bool(rr.get("enabled", cfg.rerank.enabled)),
            model=str(rr.get("model", cfg.rerank.model)),
            top_k=int(rr.get("top_k", cfg.rerank.top_k)),
        )

    if "faithfulness" in data:
        f = data["faithfulness"]
        cfg.faithfulness = FaithfulnessCfg(
            top_k=int(f.get("top_k", cfg.faithfulness.top_k)),
        )

    if "chunking" in data:
        ch = data["chunking"]
        cfg.chunking = ChunkingCfg(
            max_chars=int(ch.get("max_chars", cfg.chunking.max_chars)),
            overlap=int(ch.get("overlap", cfg.chunking.overlap)),
            merge_ceiling=int(ch.get("merge_ceiling", cfg.chunking.merge_ceiling)),
        )

    if "queue" in data:
        q = data["queue"]
        cfg.queue = QueueCfg(
            url=q.get("url") or cfg.queue.url,
            topic=str(q.get("topic", cfg.queue.topic)),
            probe_timeout=float(q.get("probe_timeout", cfg.queue.probe_timeout)),
        )

    if "poller" in data:
        p = data["poller"]
        cfg.poller = PollerCfg(
            interval=float(p.get("interval", cfg.poller.interval)),
            batch_size=int(p.get("batch_size", cfg.poller.batch_size)),
        )

    if "storage" in data:
        cfg.storage = StorageCfg(root=str(data["storage"].get("root", cfg.storage.root)))

    if "database" in data:
        cfg.database = DatabaseCfg(path=str(data["database"].get("path", cfg.database.path)))

    if "ingest" in data:
        cfg.ingest = IngestCfg(
            lease_seconds=int(data["ingest"].get("lease_seconds", cfg.ingest.lease_seconds)),
        )

    return cfg


def _apply_env_overrides(cfg: DocentConfig) -> DocentConfig:
    """Apply DOCENT_* environment variable overrides."""
    if model := os.environ.get("DOCENT_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("DOCENT_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if url := os.environ.get("DOCENT_QUEUE_URL"):
        cfg.queue.url = url
    if db := os.environ.get("DOCENT_DB"):
        cfg.database.path = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DocentConfig:
    """Load and return a merged *DocentConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *docent.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *DocentConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is outside its allowed range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg

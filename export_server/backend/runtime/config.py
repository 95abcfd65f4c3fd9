"""Runtime configuration models for the export application layer."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class OutputRuntimeConfig:
    """Where frames and encoded exports are written."""

    directory: Optional[Path] = None

    @property
    def enabled(self) -> bool:
        return self.directory is not None

    @property
    def directory_name(self) -> Optional[str]:
        if self.directory is None:
            return None
        return os.path.basename(os.path.normpath(str(self.directory)))


@dataclass
class StreamRuntimeConfig:
    """Encoding stream configuration, fixed for the process lifetime."""

    format: Optional[str] = None
    buffer: bool = False
    debug: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return bool(self.format)


@dataclass
class ExportRuntimeConfig:
    """Top-level configuration for the export runtime."""

    output: OutputRuntimeConfig = field(default_factory=OutputRuntimeConfig)
    stream: StreamRuntimeConfig = field(default_factory=StreamRuntimeConfig)

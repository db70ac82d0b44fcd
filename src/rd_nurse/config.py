"""Checker options.

Options are a structured OmegaConf config so they can come from a YAML file
(see ``configs/check.yaml``) and ``key=value`` overrides, with unknown keys
and wrong types rejected before the checker runs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from omegaconf import OmegaConf

logger = logging.getLogger(__name__)


@dataclass
class CheckOptions:
    # Treat every voice as one source
    ignore_voice_source: bool = False
    # A counted pulse ends a running repeating pattern
    interruptible_pattern: bool = False
    # Two or more pulse beats use the triangle layout
    triangleshot: bool = False


def load_options(path: Path | str | None = None, overrides: Sequence[str] = ()) -> CheckOptions:
    """Build options from defaults, an optional YAML file and dotlist overrides.

    Args:
        path: YAML file with any subset of the option keys.
        overrides: ``key=value`` strings applied last.

    Returns:
        CheckOptions instance.

    Raises:
        omegaconf.errors.ValidationError: On a value of the wrong type.
        omegaconf.errors.ConfigKeyError: On an unknown key.
    """
    cfg = OmegaConf.structured(CheckOptions)
    if path is not None:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(Path(path)))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    options = OmegaConf.to_object(cfg)
    logger.debug("Check options: %s", options)
    return options

"""Bundled litmus tests and cat models (``examples/`` at the repository root)."""
from __future__ import annotations

import os

from litmusview.config import DEFAULT_MODELS_DIR

LITMUS_SUFFIX = ".toml"
CAT_SUFFIX = ".cat"


def find_model_files(models_dir: str = DEFAULT_MODELS_DIR, suffix: str = CAT_SUFFIX) -> list[str]:
    """Find all files ending in ``suffix`` in the models directory."""
    files = []
    if os.path.isdir(models_dir):
        for f in sorted(os.listdir(models_dir)):
            if f.endswith(suffix):
                files.append(f)
    return files


def load_model_text(filename: str, models_dir: str = DEFAULT_MODELS_DIR) -> str:
    """Load the text of a bundled file; unknown names raise ``FileNotFoundError``."""
    filepath = os.path.join(models_dir, os.path.basename(filename))
    with open(filepath, "r", encoding="utf-8") as f:
        return f.read()

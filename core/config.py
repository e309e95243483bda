"""
Ranking-function documents.

A document maps function names to {description, components: [...]}. It is
read from JSON or YAML; the core only ever reads it. Writing a starter
document is an explicit CLI step (init_ranking_functions).
"""

import json
import os
import shutil

import yaml

from core.errors import ConfigurationError
from utils import print_info, print_warning

BUNDLED_RANKING_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "ranking-functions.yaml")

# Looked up in the working directory, in this order, before the bundled file
LOCAL_RANKING_FILES = (
    "ranking-functions.json",
    "ranking-functions.yaml",
    "ranking-functions.yml",
)


def _parse_document(raw, path):
    ext = os.path.splitext(path)[1].lower()

    if ext == '.json':
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}")

    if ext in ('.yaml', '.yml'):
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    # Unknown extension: try JSON, then YAML
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path} is neither valid JSON nor YAML: {e}")


def load_ranking_document(path):
    """Load one ranking-function document. Raises ConfigurationError."""
    if not os.path.isfile(path):
        raise ConfigurationError(f"Ranking file not found: {path}")
    try:
        with open(path, 'r') as f:
            raw = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}")

    document = _parse_document(raw, path)
    if not isinstance(document, dict):
        raise ConfigurationError(f"{path} must contain a mapping of ranking functions")
    return document


def locate_ranking_file(search_dir=None):
    """First local ranking file in search_dir (default: cwd), else the bundled one."""
    search_dir = search_dir or os.getcwd()
    for name in LOCAL_RANKING_FILES:
        candidate = os.path.join(search_dir, name)
        if os.path.isfile(candidate):
            return candidate
    return BUNDLED_RANKING_FILE


def load_ranking_functions(path=None, search_dir=None):
    """Load the ranking document, or return None after a warning if unusable.

    Callers treat None as "use the hardcoded default".
    """
    path = path or locate_ranking_file(search_dir)
    try:
        document = load_ranking_document(path)
    except ConfigurationError as e:
        print_warning(f"{e}; using hardcoded default ranking function")
        return None
    print_info(f"Loaded ranking functions from {path}")
    return document


def init_ranking_functions(dest_dir=None, overwrite=False):
    """Copy the bundled document to <dest_dir>/ranking-functions.yaml.

    Raises ConfigurationError when the target exists and overwrite is False.
    """
    dest_dir = dest_dir or os.getcwd()
    dest = os.path.join(dest_dir, "ranking-functions.yaml")
    if os.path.exists(dest) and not overwrite:
        raise ConfigurationError(f"{dest} already exists (use -U to overwrite)")
    shutil.copyfile(BUNDLED_RANKING_FILE, dest)
    return dest

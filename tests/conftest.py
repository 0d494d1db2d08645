"""Root-level pytest fixtures for the ucan test suite.

Provides shared configuration fixtures following the Pydantic-based
configuration layers. Tests build configs through these fixtures instead
of raw dicts.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

from ucan.schemas import ParamConfig, UserConfig, resolve_config
from ucan.setup_directories import setup_output_directories


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Examples
    --------
    >>> def test_aligner_init(internal_config):
    ...     aligner = FrameAligner(internal_config)
    ...     assert aligner.model == "similarity"
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_manual(make_config):
    ...     config = make_config(ALIGN_METHOD="manual")
    ...     assert config.aligner.method == "manual"
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard output directory structure under ``temp_dir/output``."""
    return setup_output_directories(temp_dir / "output")


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_root_logger():
    """Undo the handlers a run installs on the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

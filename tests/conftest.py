"""Shared fixtures for PromptVault tests."""

import tempfile
from pathlib import Path

import pytest

from promptvault.config import ConfigManager
from promptvault.core.manager import PromptManager
from promptvault.storage.filesystem import PromptFileSystem


def make_record(**overrides):
    """Raw record data for the Greeting/Hello prompt, with overrides."""
    data = {
        "category": "Greeting",
        "name": "Hello",
        "description": "Greets someone by name",
        "template": "Hi {{name}}!",
        "parameters": ["name"],
        "inputSchema": {
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        },
        "outputSchema": {"type": "string"},
    }
    data.update(overrides)
    return data


@pytest.fixture
def temp_dir():
    """Create a temporary directory for storage tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
async def storage(temp_dir):
    """Create an initialized filesystem store in the temp directory."""
    fs = PromptFileSystem(base_path=temp_dir / "prompts")
    await fs.initialize()
    return fs


@pytest.fixture
def config(temp_dir):
    """Create a config manager rooted at the temp directory."""
    return ConfigManager(root=temp_dir)


@pytest.fixture
async def manager(config):
    """Create an initialized manager with an empty prompt store."""
    mgr = PromptManager(config=config)
    await mgr.initialize()
    return mgr

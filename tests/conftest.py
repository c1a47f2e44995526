"""Shared test fixtures for the idempiere_codegen test suite.

Provides a fake AI client, jar builders and a plugin workspace laid out
next to a fake iDempiere checkout.  Unit tests never need API keys.
"""

import json
import logging
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from idempiere_codegen.ai_client import AIClient, AIResponse
from idempiere_codegen.config import CodegenConfig, LoggingConfig


PLUGIN_ID = "org.example.plugin"

MANIFEST = """Manifest-Version: 1.0
Bundle-ManifestVersion: 2
Bundle-Name: Example Plugin
Bundle-SymbolicName: org.example.plugin;singleton:=true
Bundle-Version: 1.0.0.qualifier
Bundle-RequiredExecutionEnvironment: JavaSE-17
Import-Package: org.osgi.framework;version="1.3.0",
 org.compiere.model
"""

PLATFORM_CLASSES = [
    "org/compiere/model/MOrder.class",
    "org/compiere/model/MOrder$1.class",
    "org/compiere/process/SvrProcess.class",
    "org/adempiere/base/IColumnCallout.class",
    "org/adempiere/base/annotation/Callout.class",
    "org/idempiere/model/IProcessUI.class",
    "org/osgi/framework/BundleActivator.class",
]


# ---------------------------------------------------------------------------
# Fake AI client
# ---------------------------------------------------------------------------

class FakeAIClient(AIClient):
    """An AI client that replays canned responses.

    Usage in tests::

        client = FakeAIClient(AIResponse.ok('{"files": [...]}'))
        client.generate("anything")
        assert client.prompts == ["anything"]
    """

    def __init__(self, *responses: AIResponse, provider: str = "fake"):
        self.responses: List[AIResponse] = list(responses) or [AIResponse.ok("OK")]
        self.prompts: List[str] = []
        self._provider = provider

    @property
    def provider_name(self) -> str:
        return self._provider

    def is_configured(self) -> bool:
        return True

    def generate(self, prompt: str) -> AIResponse:
        self.prompts.append(prompt)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def call_count(self) -> int:
        return len(self.prompts)


def files_response(*files, **extra) -> str:
    """Render a ``{"files": [...]}`` AI response body."""
    body = {"files": [{"path": p, "content": c} for p, c in files]}
    body.update(extra)
    return json.dumps(body)


# ---------------------------------------------------------------------------
# Jar helpers
# ---------------------------------------------------------------------------

def make_jar(path: Path, entries: Iterable[str]) -> Path:
    """Write a jar at ``path`` containing empty entries with the given names."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as jar:
        for name in entries:
            jar.writestr(name, b"")
    return path


def make_jar_with_undecodable_name(path: Path) -> Path:
    """Write a jar whose entry name is flagged UTF-8 but holds invalid bytes."""
    make_jar(path, ["org/compiere/model/Café.class"])
    data = path.read_bytes()
    # the UTF-8 flag (0x800) is already set for the non-ascii name
    path.write_bytes(data.replace("Café".encode("utf-8"), b"Caf\xff\xfe"))
    return path


def make_p2_repository(root: Path, jars: Optional[dict] = None) -> Path:
    """Create a p2 repository at ``root`` with jars under ``plugins/``."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "content.xml").write_text("<repository/>", encoding="utf-8")
    for name, entries in (jars or {"org.idempiere.core.jar": PLATFORM_CLASSES}).items():
        make_jar(root / "plugins" / name, entries)
    return root


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _no_idempiere_home(monkeypatch):
    """Keep the developer's IDEMPIERE_HOME out of resolution tests."""
    monkeypatch.delenv("IDEMPIERE_HOME", raising=False)


@pytest.fixture
def fake_client():
    return FakeAIClient()


@pytest.fixture
def p2_repo(tmp_path):
    """A built iDempiere checkout: ``<tmp>/idempiere/org.idempiere.p2/target/repository``."""
    return make_p2_repository(
        tmp_path / "idempiere" / "org.idempiere.p2" / "target" / "repository"
    )


@pytest.fixture
def plugin_dir(tmp_path):
    """A minimal plugin under ``<tmp>/workspace`` with manifest and Activator."""
    root = tmp_path / "workspace" / PLUGIN_ID
    (root / "META-INF").mkdir(parents=True)
    (root / "META-INF" / "MANIFEST.MF").write_text(MANIFEST, encoding="utf-8")
    (root / "build.properties").write_text(
        "source.. = src/\noutput.. = bin/\nbin.includes = META-INF/,\\\n               .\n",
        encoding="utf-8",
    )
    src = root / "src" / "org" / "example" / "plugin"
    src.mkdir(parents=True)
    (src / "Activator.java").write_text(
        "package org.example.plugin;\n\n"
        "import org.osgi.framework.BundleActivator;\n\n"
        "public class Activator implements BundleActivator {\n}\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def test_config(tmp_path):
    """A CodegenConfig with AI off and logs under ``tmp_path``."""
    return CodegenConfig(logging=LoggingConfig(log_dir=str(tmp_path / "logs")))


@pytest.fixture
def restore_package_logger():
    """Undo handlers and level set on the ``idempiere_codegen`` logger."""
    package_logger = logging.getLogger("idempiere_codegen")
    handlers, level = list(package_logger.handlers), package_logger.level
    yield package_logger
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            handler.close()
            package_logger.removeHandler(handler)
    package_logger.setLevel(level)

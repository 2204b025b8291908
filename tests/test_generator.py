"""Package documentation generator tests."""

import pytest

from readme_sync.errors import GenerationError
from readme_sync.generator import PackageDocGenerator
from readme_sync.generator.package_doc import candidate_modules
from readme_sync.schemas import RepoConfig, RepoReference

from tests.conftest import OWNER, FakeHost


MODULE = b'''"""Widget makes widgets.

Use it to build widgets quickly.
"""


def build(size, color):
    """Build a widget."""


async def fetch(name):
    pass


class Widget:
    """A widget."""


def _private():
    pass
'''


def ref(repo="widget"):
    return RepoReference(owner=OWNER, repo=repo, ref="main")


async def test_readme_from_package_docstring():
    host = FakeHost(files={"widget/__init__.py": MODULE})

    content = await PackageDocGenerator().generate(host, ref(), RepoConfig())
    text = content.decode()

    assert text.startswith("# widget\n")
    assert "Widget makes widgets.\n\nUse it to build widgets quickly." in text
    assert "## Installation" in text
    assert "pip install widget" in text
    assert "## API" not in text


async def test_api_summary_and_badges():
    host = FakeHost(files={"src/widget/__init__.py": MODULE})
    config = RepoConfig(title="Widget", package="py-widget", api=True, badge_pypi=True, install=False)

    text = (await PackageDocGenerator().generate(host, ref(), config)).decode()

    assert text.startswith("# Widget\n")
    assert "https://pypi.org/project/py-widget/" in text
    assert "- `def build(size, color)`: Build a widget." in text
    assert "- `async def fetch(name)`" in text
    assert "- `class Widget`: A widget." in text
    assert "_private" not in text
    assert "## Installation" not in text


async def test_configured_module_path():
    host = FakeHost(files={"lib/core.py": b'"""Core docs."""\n'})

    text = (await PackageDocGenerator().generate(host, ref(), RepoConfig(module="lib/core.py"))).decode()

    assert "Core docs." in text


def test_candidate_modules_normalize_repository_name():
    assert candidate_modules("My-Lib.py")[0] == "my_lib_py/__init__.py"


@pytest.mark.parametrize("files", [
    {},
    {"widget/__init__.py": b"x = 1\n"},
    {"widget/__init__.py": b"def broken(:\n"},
    {"widget/__init__.py": b"\xff\xfe"},
])
async def test_generation_errors(files):
    host = FakeHost(files=files)

    with pytest.raises(GenerationError):
        await PackageDocGenerator().generate(host, ref(), RepoConfig())

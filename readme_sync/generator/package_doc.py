"""README generation from a Python package's documentation.

The package docstring is the single source of truth for the README: the
generator fetches the package's top-level module at the job's head commit,
takes its module docstring and renders it with a title, optional badges, an
installation section and an optional API summary.
"""

from __future__ import annotations

import ast
import logging

from readme_sync.errors import GenerationError
from readme_sync.generator.base import DocumentGenerator
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import RepoConfig, RepoReference


logger = logging.getLogger(__name__)

# Maximum number of entries in the API summary
MAX_API_ENTRIES = 30


def candidate_modules(repo: str) -> list[str]:
    """Paths where the top-level module of ``repo`` usually lives."""
    package = repo.lower().replace("-", "_").replace(".", "_")
    return [
        f"{package}/__init__.py",
        f"src/{package}/__init__.py",
        f"{package}.py",
    ]


class PackageDocGenerator(DocumentGenerator):
    """Renders the README from the package docstring."""

    async def generate(
        self,
        host: RepositoryHost,
        ref: RepoReference,
        config: RepoConfig,
    ) -> bytes:
        path, source = await self._find_module(host, ref, config)

        try:
            tree = ast.parse(source, filename=path)
        except SyntaxError as e:
            raise GenerationError(f"failed parsing {path}") from e

        docstring = ast.get_docstring(tree)
        if not docstring:
            raise GenerationError(f"{path} has no module docstring")

        logger.info(f"Generating readme for {ref.url} from {path}")
        return render_readme(ref, config, docstring, public_api(tree) if config.api else []).encode("utf-8")

    async def _find_module(
        self,
        host: RepositoryHost,
        ref: RepoReference,
        config: RepoConfig,
    ) -> tuple[str, str]:
        paths = [config.module] if config.module else candidate_modules(ref.repo)
        for path in paths:
            try:
                module = await host.get_contents(ref.owner, ref.repo, path, ref=ref.ref)
            except GitHubAPIError as e:
                raise GenerationError(f"failed reading {path}") from e
            if module is None:
                continue
            try:
                return path, module.content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise GenerationError(f"{path} is not UTF-8 text") from e

        raise GenerationError(f"package module not found, tried: {', '.join(paths)}")


def public_api(tree: ast.Module) -> list[tuple[str, str]]:
    """Collect (signature, summary) for public top-level functions and classes."""
    entries: list[tuple[str, str]] = []
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            if node.name.startswith("_"):
                continue
            args = ", ".join(arg.arg for arg in node.args.args)
            prefix = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
            signature = f"{prefix} {node.name}({args})"
        elif isinstance(node, ast.ClassDef):
            if node.name.startswith("_"):
                continue
            signature = f"class {node.name}"
        else:
            continue

        doc = ast.get_docstring(node) or ""
        summary = doc.strip().splitlines()[0] if doc.strip() else ""
        entries.append((signature, summary))

    return entries[:MAX_API_ENTRIES]


def render_readme(
    ref: RepoReference,
    config: RepoConfig,
    docstring: str,
    api: list[tuple[str, str]],
) -> str:
    """Render the README markdown."""
    package = config.package or ref.repo
    lines = [f"# {config.title or ref.repo}", ""]

    badges = []
    if config.badge_pypi:
        badges.append(
            f"[![PyPI](https://img.shields.io/pypi/v/{package})](https://pypi.org/project/{package}/)"
        )
    if config.badge_license:
        badges.append(
            f"[![License](https://img.shields.io/github/license/{ref.owner}/{ref.repo})]"
            f"(https://{ref.url}/blob/HEAD/LICENSE)"
        )
    if badges:
        lines.extend([" ".join(badges), ""])

    lines.extend([docstring.strip(), ""])

    if config.install:
        lines.extend([
            "## Installation",
            "",
            "```",
            f"pip install {package}",
            "```",
            "",
        ])

    if api:
        lines.extend(["## API", ""])
        for signature, summary in api:
            entry = f"- `{signature}`"
            if summary:
                entry += f": {summary}"
            lines.append(entry)
        lines.append("")

    return "\n".join(lines)

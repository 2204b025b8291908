"""README generators."""

from readme_sync.generator.base import DocumentGenerator
from readme_sync.generator.package_doc import PackageDocGenerator

__all__ = ["DocumentGenerator", "PackageDocGenerator"]

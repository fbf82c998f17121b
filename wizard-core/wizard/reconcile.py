"""Package reconciliation.

Merges the database of a previous installation into the package catalog so
the selection reflects what is already on disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import InstallationMetadata, Package


def reconcile(metadata: InstallationMetadata, packages: list[Package]) -> list[Package]:
    """Update ``default`` and ``installed`` on every catalog package.

    For a preexisting install, exactly the packages named in
    ``metadata.database`` end up selected and marked installed; database
    entries the catalog does not know are ignored. For a fresh install only
    ``installed`` is cleared and the configured defaults stay as they are.

    Args:
        metadata: Installation status reported by the backend. Not modified.
        packages: The catalog; updated in place.

    Returns:
        The same catalog list.
    """
    if not metadata.preexisting_install:
        for package in packages:
            package.installed = False
        return packages

    recorded = {entry.name for entry in metadata.database}
    for package in packages:
        present = package.name in recorded
        package.default = present
        package.installed = present

    return packages

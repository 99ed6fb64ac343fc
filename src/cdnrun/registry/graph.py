"""Top-level dependency loading: fans a DependencySpec out to the graph client."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from cdnrun.versioning import format_spec

from .client import DependencyGraphClient
from .models import DependencySpec, PackageNode

logger = logging.getLogger(__name__)


async def load_dependency_packages(
    client: DependencyGraphClient, dependencies: DependencySpec
) -> List[PackageNode]:
    """Resolve every declared dependency concurrently.

    Returns root nodes in declaration order. The batch fails as a whole if any
    member fails; there is no partial result.
    """
    if not dependencies:
        return []
    specs = [format_spec(name, rng) for name, rng in dependencies.items()]
    logger.info("Resolving %d dependencies: %s", len(specs), ", ".join(specs))
    return list(await asyncio.gather(*(client.load(spec) for spec in specs)))

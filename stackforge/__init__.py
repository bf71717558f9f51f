"""Stackforge: content-addressed product stack templates with version history.

Renders product stacks into immutable templates addressed by their SHA-256
digest, decides per declared version whether to build fresh or reuse a
previous build from the version manifest, and refuses to let a locked
version's template drift from its snapshot.
"""

__version__ = "0.1.0"
__description__ = (
    "Template version cache and synthesis pipeline for product stacks"
)

from stackforge.core.renderer import ProductStack
from stackforge.core.resolver import VersionResolver
from stackforge.core.synthesizer import ProductSynthesizer
from stackforge.history import ProductStackHistory

__all__ = [
    "ProductStack",
    "ProductStackHistory",
    "ProductSynthesizer",
    "VersionResolver",
    "__version__",
]

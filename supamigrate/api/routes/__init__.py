"""API route modules."""

from . import migrations, preview

__all__ = ["migrations", "preview"]

"""Loading of per-relation document hooks from Python files."""

import logging
import importlib.util
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


# hook(relation, record, emit) -> record to write, or None to drop it
DocumentHook = Callable[[str, Dict[str, Any], Callable[[str, Dict[str, Any]], None]], Optional[Dict[str, Any]]]

HOOK_FUNCTION = "process_document"


def load_hooks(hooks_dir: Optional[str]) -> Dict[str, DocumentHook]:
    """
    Load document hooks from a directory.

    Each `<relation>.py` file defining a `process_document` function
    becomes the hook for that relation.

    Args:
        hooks_dir: Directory of hook modules

    Returns:
        Mapping of relation name to hook

    Raises:
        ValueError: If the directory does not exist
    """
    hooks: Dict[str, DocumentHook] = {}
    if not hooks_dir:
        return hooks

    path = Path(hooks_dir)
    if not path.is_dir():
        raise ValueError(f"Hooks directory not found: {hooks_dir}")

    for file_path in sorted(path.glob("*.py")):
        if file_path.name.startswith("_"):
            continue
        relation = file_path.stem
        spec = importlib.util.spec_from_file_location(f"supamigrate_hooks.{relation}", file_path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        hook = getattr(module, HOOK_FUNCTION, None)
        if not callable(hook):
            logger.warning(f"{file_path} defines no {HOOK_FUNCTION}(); ignored")
            continue
        hooks[relation] = hook
        logger.info(f"Loaded document hook for {relation} from {file_path}")

    return hooks

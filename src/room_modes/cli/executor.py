"""Script execution sandbox for room definitions.

Room scripts are plain Python files that build a CSG solid and assign it to
``room``. They run with restricted imports in a controlled namespace.
"""

import builtins
from pathlib import Path
from typing import Any

from room_modes.geometry.solids import SDFPrimitive

#: Allowed module prefixes (first component of import path)
ALLOWED_MODULES = frozenset(
    {
        "room_modes",
        "numpy",
        "scipy",
        "math",
    }
)


class RestrictedImportError(ImportError):
    """Raised when a disallowed module import is attempted."""

    pass


def execute_room_script(
    script_path: Path, script_content: str, verbose: bool = False
) -> dict[str, Any]:
    """Execute room script in controlled namespace.

    Only the script's own import statements are checked. It gets a private
    copy of the builtins with a restricted ``__import__``, so modules it
    calls into import their dependencies normally.

    Args:
        script_path: Path to the script file (exposed as ``__file__``)
        script_content: Content of the script to execute
        verbose: If True, print debug information

    Returns:
        Namespace dict containing all variables defined by the script

    Raises:
        RestrictedImportError: If script attempts to import disallowed module
        SyntaxError: If script has syntax errors
        Exception: Any exception raised by the script during execution
    """
    original_import = builtins.__import__

    def restricted_import(name, globals=None, locals=None, fromlist=(), level=0):
        """Restricted import that only allows specific modules."""
        top_level = name.split(".")[0]

        if level > 0 or top_level not in ALLOWED_MODULES:
            raise RestrictedImportError(
                f"Import of '{name}' is not allowed in room scripts. "
                f"Allowed modules: {', '.join(sorted(ALLOWED_MODULES))}"
            )

        return original_import(name, globals, locals, fromlist, level)

    sandbox_builtins = dict(vars(builtins))
    sandbox_builtins["__import__"] = restricted_import

    namespace = {
        "__name__": "__main__",
        "__file__": str(script_path),
        "__builtins__": sandbox_builtins,
    }

    if verbose:
        print(f"Executing script: {script_path}")

    code = compile(script_content, str(script_path), "exec")
    exec(code, namespace)

    if verbose:
        defined_vars = [k for k in namespace.keys() if not k.startswith("__")]
        print(f"Script defined variables: {', '.join(defined_vars)}")

    return namespace


def validate_room_object(namespace: dict[str, Any]) -> SDFPrimitive:
    """Validate that namespace contains a room solid.

    Args:
        namespace: Namespace dict from script execution

    Returns:
        The room solid

    Raises:
        ValueError: If no room found or it is not a solid
    """
    room = namespace.get("room")

    if room is None:
        raise ValueError(
            "Script must define a 'room' variable. "
            "Example: room = Cuboid(min_corner=(0, 0, 0), max_corner=(5, 4, 2.5))"
        )

    if not isinstance(room, SDFPrimitive):
        raise ValueError(
            f"'room' must be a solid (Cuboid, Prism, Hexahedron, Union, ...), "
            f"got {type(room).__name__}"
        )

    lo, hi = room.bounding_box
    if any(h <= l for l, h in zip(lo, hi)):
        raise ValueError("'room' is empty: its bounding box has no volume")

    return room

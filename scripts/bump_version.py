#!/usr/bin/env python3
"""Keep the Cloud Saves version in sync across files.

Usage:
    python scripts/bump_version.py 1.1.0
    python scripts/bump_version.py --check
"""

import re
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent

# file -> (pattern, replacement template)
VERSION_FILES = {
    "pyproject.toml": (r'^version = "([^"]+)"', 'version = "{version}"'),
    "cloudsaves/__init__.py": (r'^__version__ = "([^"]+)"', '__version__ = "{version}"'),
}


def read_versions() -> dict[str, str | None]:
    versions = {}
    for file, (pattern, _) in VERSION_FILES.items():
        path = ROOT / file
        match = re.search(pattern, path.read_text(), re.MULTILINE) if path.exists() else None
        versions[file] = match.group(1) if match else None
    return versions


def write_version(version: str) -> list[str]:
    """Rewrite every version string. Returns the files that changed."""
    changed = []
    for file, (pattern, template) in VERSION_FILES.items():
        path = ROOT / file
        content = path.read_text()
        updated = re.sub(pattern, template.format(version=version), content, flags=re.MULTILINE)
        if updated != content:
            path.write_text(updated)
            changed.append(file)
        print(f"  {'OK  ' if updated != content else 'SAME'} {file}")
    return changed


def main():
    if len(sys.argv) != 2:
        print(__doc__.strip())
        sys.exit(1)

    arg = sys.argv[1]
    if arg == "--check":
        versions = read_versions()
        for file, version in versions.items():
            print(f"  {file}: {version or 'NOT FOUND'}")
        if None in versions.values() or len(set(versions.values())) != 1:
            print("✗ Versions out of sync")
            sys.exit(1)
        print("✓ Versions in sync")
        return

    if not re.fullmatch(r"[0-9]+\.[0-9]+\.[0-9]+", arg):
        print(f"Invalid version: {arg} (expected X.Y.Z)")
        sys.exit(1)

    changed = write_version(arg)
    if changed:
        print(f"\ngit commit -am 'chore: bump version to {arg}'")


if __name__ == "__main__":
    main()

"""
Checks on the project metadata.
"""

import os
import re

ROOT = os.path.join(os.path.dirname(__file__), '..', '..')


def test_readme_is_package_description():
    """The long description points at the project README."""
    with open(os.path.join(ROOT, "pyproject.toml"), encoding="utf-8") as f:
        pyproject = f.read()

    match = re.search(r'^readme\s*=\s*"([^"]+)"', pyproject, re.MULTILINE)

    assert match is not None
    assert match.group(1) == "README.md"
    assert os.path.isfile(os.path.join(ROOT, match.group(1)))

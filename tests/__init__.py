"""
Test package for keyfx.
This module ensures that the repository root is in the Python path.
"""
import sys
import pathlib

# Add the repository root to the Python path
repo_root = pathlib.Path(__file__).parent.parent.absolute()
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

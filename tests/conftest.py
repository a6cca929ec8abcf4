"""
pytest configuration for the clickstream test suite.

Adds src directory to Python path for imports. No broker or database is
needed: aiokafka and pymongo clients are replaced with mocks in each test.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

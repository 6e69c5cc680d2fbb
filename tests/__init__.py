"""
Portal Agent Test Suite

Unit tests for the agent loop, its collaborators and the HTTP surface.
Run tests with: pytest tests/
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

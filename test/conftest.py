"""
Test configuration for Canon interpreter tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_interpreter


@pytest.fixture
def interp():
  """Fresh interpreter (own set pool and global scope) for each test"""
  return create_interpreter()


@pytest.fixture
def run(interp):
  """Run source text and return the lines its bare expressions rendered"""
  def run_source(source):
    return interp.interpret(source)
  return run_source

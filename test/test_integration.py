"""
Integration tests running the Canon example scripts end to end

Every `// expect: <line>` comment in a script names the next rendered
output line; a `// expect-error: <ErrorClass>` comment names the error the
script must stop with.
"""

import re
import pytest
from pathlib import Path

from parsing import create_parser
from semantics import create_analyzer
from interpreter import create_interpreter


EXAMPLES_DIR = Path(__file__).parent.parent / "examples"
EXPECT_PATTERN = re.compile(r'//\s*expect:\s?(.*)$')
EXPECT_ERROR_PATTERN = re.compile(r'//\s*expect-error:\s*(\w+)')


def read_expectations(source):
  """Collect the expected output lines and the expected error class name"""
  expected = []
  error_name = None
  for line in source.split('\n'):
    error_match = EXPECT_ERROR_PATTERN.search(line)
    if error_match:
      error_name = error_match.group(1)
      continue
    match = EXPECT_PATTERN.search(line)
    if match:
      expected.append(match.group(1).rstrip())
  return expected, error_name


def example_scripts():
  return sorted(EXAMPLES_DIR.glob("*.canon"))


class TestExampleScripts:
  """Run each example and compare with its expectations"""

  @pytest.fixture
  def examples_dir(self):
    """Get the examples directory path"""
    return EXAMPLES_DIR

  def test_examples_present(self, examples_dir):
    assert examples_dir.is_dir()
    assert len(example_scripts()) > 0

  @pytest.mark.parametrize("script", example_scripts(), ids=lambda p: p.stem)
  def test_script_output(self, script):
    source = script.read_text()
    expected, error_name = read_expectations(source)
    interp = create_interpreter()

    if error_name is None:
      assert interp.interpret(source, str(script)) == expected
      return

    with pytest.raises(Exception) as info:
      interp.interpret(source, str(script))
    assert type(info.value).__name__ == error_name
    assert interp.outputs == expected


class TestExamplePipeline:
  """The front end stages handle every example on their own"""

  @pytest.mark.parametrize("script", example_scripts(), ids=lambda p: p.stem)
  def test_parse_and_analyze(self, script):
    cst_nodes = create_parser().parse_file(str(script))
    ast_nodes = create_analyzer().analyze(cst_nodes)
    assert len(ast_nodes) == len(cst_nodes)
    assert all(node['type'] == 'EXPR_STMT' for node in ast_nodes)

"""
REPL line handling: rendered output and error reporting
"""

from main import run_repl_line


class TestReplLine:

  def test_outputs_are_echoed(self, interp, capsys):
    run_repl_line(interp, "x = 2; x * 3")
    assert capsys.readouterr().out == "=> 6\n"

  def test_output_before_error_is_shown(self, interp, capsys):
    run_repl_line(interp, "1 + 1; nope; 3")
    out = capsys.readouterr().out
    assert out.startswith("=> 2\n")
    assert "UndefinedSymbol" in out
    assert "=> 3" not in out

  def test_unfinished_feature_after_output(self, interp, capsys):
    run_repl_line(interp, "y = 1; y; y : Real")
    out = capsys.readouterr().out
    assert out.startswith("=> 1\n")
    assert "type cast" in out

  def test_earlier_lines_are_not_repeated(self, interp, capsys):
    run_repl_line(interp, "5")
    run_repl_line(interp, "6")
    assert capsys.readouterr().out == "=> 5\n=> 6\n"

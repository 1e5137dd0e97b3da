"""
Canon Programming Language - Main Entry Point
A small mathematical language with exact numbers, sets as types, and curried functions
"""

import sys
import argparse
from pathlib import Path
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import (
  CanonParseError,
  CanonTokenizerError,
  CanonSemanticsError,
  CanonRuntimeError,
  CanonInternalError,
  NotYetImplemented,
)
from parsing import create_parser, create_debug_parser, pretty_print_cst, format_tokens
from semantics import create_analyzer, create_debug_analyzer, pretty_print_ast
from interpreter import create_interpreter, create_debug_interpreter
from environment import VALUE_ENTRY, TYPE_CONSTRAINT_ENTRY, env_user_bindings
from values import render_value
from sets import render_set, BUILTIN_SET_NAMES


VERSION = 'Canon v0.1.0'
HISTORY_FILE = "~/.canon_history"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Canon Programming Language - exact arithmetic with sets as types',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.canon            # Run a Canon script
  %(prog)s                         # Interactive mode
  %(prog)s --tokens script.canon   # Show the token stream
  %(prog)s --parse script.canon    # Parse and show CST
  %(prog)s --ast script.canon      # Parse, analyze and show AST
  %(prog)s --debug script.canon    # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Canon script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show CST (for debugging)'
  )

  parser.add_argument(
      '--ast',
      action='store_true',
      help='Parse and analyze file, show AST (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_script(script_path: str) -> str:
  """Read a script, exiting with a hint when the file cannot be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)


def tokenize_file(script_path: str, debug: bool = False) -> None:
  """Tokenize a Canon script file and show the tokens"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    print(format_tokens(parser.tokenize(source, script_path)))
  except CanonTokenizerError as e:
    print(f"Tokenizer error in '{script_path}': {e}")
    sys.exit(1)


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Canon script file and show the CST"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    print(f"Parsing {script_path}...")
    cst_nodes = parser.parse_string(source, script_path)

    print(f"\nParsed {len(cst_nodes)} statements:")
    print("=" * 50)

    for i, node in enumerate(cst_nodes, 1):
      print(f"\nStatement {i}:")
      print(pretty_print_cst(node))
  except CanonParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)


def analyze_file(script_path: str, debug: bool = False) -> None:
  """Parse and analyze a Canon script file and show the AST"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  try:
    print(f"Parsing and analyzing {script_path}...")
    cst_nodes = parser.parse_string(source, script_path)

    for i, cst_node in enumerate(cst_nodes, 1):
      print(f"\nStatement {i} - AST:")
      print(pretty_print_ast(analyzer.analyze_statement(cst_node)))
  except CanonParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except CanonSemanticsError as e:
    print(f"Semantic analysis error in '{script_path}': {e}")
    sys.exit(1)


def print_runtime_error(e: CanonRuntimeError, script_path: str) -> None:
  print(f"\n{'='*70}")
  print(f"{e.kind} in '{script_path}'")
  print(f"{'='*70}")
  print(f"\nError: {e.message}")

  if e.span:
    print(f"\nLocation: {e.span}")
    if e.span.text:
      print(f"\nSource:")
      print(f"  {e.span.text}")
      print(f"  {'~' * len(e.span.text)}")

  print(f"\n{'='*70}\n")


def print_outputs(interpreter) -> None:
  for line in interpreter.outputs:
    print(line)


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Canon script, printing one line per bare expression statement"""
  source = read_script(script_path)
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    interpreter.interpret(source, script_path)
  except CanonTokenizerError as e:
    print(f"Tokenizer error in '{script_path}': {e}")
    sys.exit(1)
  except CanonParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except CanonSemanticsError as e:
    print(f"Semantic analysis error in '{script_path}': {e}")
    sys.exit(1)
  except CanonRuntimeError as e:
    print_outputs(interpreter)
    print_runtime_error(e, script_path)
    sys.exit(1)
  except NotYetImplemented as e:
    print_outputs(interpreter)
    print(f"Error in '{script_path}': {e}")
    print(f"  Hint: this part of the language is not finished yet")
    sys.exit(1)
  except CanonInternalError as e:
    print_outputs(interpreter)
    print(f"Internal interpreter error while executing '{script_path}': {e}")
    sys.exit(1)
  except RecursionError:
    print_outputs(interpreter)
    print(f"Error: recursion too deep while executing '{script_path}'")
    sys.exit(1)

  print_outputs(interpreter)


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = list(BUILTIN_SET_NAMES) + [
      "true", "false",
      # REPL commands
      ":tokens", ":parse", ":env", ":help", "exit"
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  # Save history on exit
  import atexit
  atexit.register(readline.write_history_file, history_file)


def show_environment(interpreter) -> None:
  print("Current environment:")
  shown = 0
  for name, entry in env_user_bindings(interpreter.env).items():
    if name in BUILTIN_SET_NAMES:
      continue
    if entry['kind'] == VALUE_ENTRY:
      text = f"{name} = {render_value(entry['value'])}"
    elif entry['kind'] == TYPE_CONSTRAINT_ENTRY:
      text = f"{name} : {render_set(entry['set'])}"
    else:
      params = ", ".join(render_set(param) for param in entry['params'])
      text = f"{name} : {params} -> {render_set(entry['codomain'])}"
    if len(text) > 70:
      text = text[:67] + "..."
    print(f"  {text}")
    shown += 1
  if shown == 0:
    print("  (no user-defined bindings)")


def show_help() -> None:
  print("REPL Commands:")
  print("  :tokens <src>     - Show tokens")
  print("  :parse <src>      - Show parsed CST")
  print("  :env              - Show current environment")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  x = 5                     - Assignment (names are assigned once)")
  print("  x : Nat = 5               - Typed assignment")
  print("  y : {1, 2, 3}             - Type declaration")
  print("  f(x, y) = x + y           - Function definition")
  print("  f : Int, Int -> Int       - Function signature")
  print("  f(1, )                    - Partial application")
  print("  {1, 2} | Nat              - Set algebra (| & ~ \\)")


def echo_outputs(interpreter, start: int = 0) -> None:
  for line in interpreter.outputs[start:]:
    print(f"=> {line}")


def run_repl_line(interpreter, code: str) -> None:
  """Run one REPL line; output of statements before a failing one is still shown"""
  start = len(interpreter.outputs)
  try:
    interpreter.interpret(code, "<repl>")
  except CanonParseError as e:
    print(f"Parse error: {e}")
  except CanonSemanticsError as e:
    print(f"Semantic error: {e}")
  except CanonRuntimeError as e:
    echo_outputs(interpreter, start)
    print(f"\n{e.kind}:")
    print(f"  {e.message}")
    if e.span:
      print(f"  Location: {e.span}")
    print()
  except NotYetImplemented as e:
    echo_outputs(interpreter, start)
    print(f"Error: {e}")
  else:
    echo_outputs(interpreter, start)


def run_interactive_mode(debug: bool = False) -> None:
  """Run Canon in interactive mode; errors are reported and the session continues"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  parser = create_debug_parser() if debug else create_parser()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input("canon> ")

      if code.strip() == "exit":
        break

      if not code.strip():
        continue

      if code.startswith(":tokens "):
        try:
          print(format_tokens(parser.tokenize(code[8:])))
        except CanonTokenizerError as e:
          print(f"Tokenizer error: {e}")
        continue

      if code.startswith(":parse "):
        try:
          for cst in parser.parse_string(code[7:]):
            print(pretty_print_cst(cst))
        except CanonParseError as e:
          print(f"Parse error: {e}")
        continue

      if code.strip() == ":env":
        show_environment(interpreter)
        continue

      if code.strip() == ":help":
        show_help()
        continue

      run_repl_line(interpreter, code)

    except KeyboardInterrupt:
      print("\nGoodbye!")
      break
    except EOFError:
      print("\nGoodbye!")
      break
    except (CanonTokenizerError, CanonInternalError, RecursionError) as e:
      print(f"Unexpected error: {e}")
      if debug:
        import traceback
        traceback.print_exc()
      print("  Hint: If this keeps happening, try restarting or use --debug for more details")


def main() -> None:
  """Main entry point for Canon"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if args.script and not args.interactive:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.tokens:
      tokenize_file(args.script, debug=args.debug)
    elif args.parse:
      parse_file(args.script, debug=args.debug)
    elif args.ast:
      analyze_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)
  else:
    run_interactive_mode(debug=args.debug)


if __name__ == "__main__":
  main()

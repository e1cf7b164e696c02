"""
Run a code snippet in a separate process and capture what it prints.

JavaScript runs under node with console.log/warn/error/info captured;
Python runs in an isolated interpreter with stdout captured. Runtime errors
become part of the output and a snippet that does not compile is reported
as a syntax error. execute_code never raises.
"""
import json
import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional

from ..config import SANDBOX_TIMEOUT, NODE_BINARY

logger = logging.getLogger("sandbox")

JAVASCRIPT_ALIASES = ("javascript", "js", "node", "typescript", "ts")
PYTHON_ALIASES = ("python", "py", "python3")

# Reads the snippet from stdin, prints one JSON object {output, error}
_NODE_HARNESS = r"""
const source = require('fs').readFileSync(0, 'utf8');
const logs = [];
const fmt = (a) => (typeof a === 'object' ? JSON.stringify(a) : String(a));
const sandboxConsole = {
  log: (...args) => logs.push(args.map(fmt).join(' ')),
  warn: (...args) => logs.push('WARN: ' + args.join(' ')),
  error: (...args) => logs.push('ERROR: ' + args.join(' ')),
  info: (...args) => logs.push('INFO: ' + args.join(' ')),
};
const wrapped = 'try { (function() {\n' + source + '\n})(); } catch (e) { console.error(e.name + ": " + e.message); }';
let fn;
try {
  fn = new Function('console', wrapped);
} catch (e) {
  process.stdout.write(JSON.stringify({ output: '', error: 'Syntax Error: ' + (e.message || 'Invalid Code') }));
  process.exit(0);
}
fn(sandboxConsole);
process.stdout.write(JSON.stringify({ output: logs.join('\n'), error: null }));
"""

_PYTHON_HARNESS = r"""
import contextlib, io, json, sys
source = sys.stdin.read()
try:
    code = compile(source, '<snippet>', 'exec')
except SyntaxError as e:
    sys.__stdout__.write(json.dumps({'output': '', 'error': 'Syntax Error: ' + (e.msg or 'Invalid Code')}))
    sys.exit(0)
buf = io.StringIO()
with contextlib.redirect_stdout(buf):
    try:
        exec(code, {'__name__': '__main__'})
    except Exception as e:
        print('ERROR: %s: %s' % (type(e).__name__, e))
sys.__stdout__.write(json.dumps({'output': buf.getvalue().rstrip('\n'), 'error': None}))
"""


@dataclass
class ExecutionResult:
    """Captured output of one run; ``error`` is set only when the run itself failed."""
    output: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _command_for(language: str) -> Optional[list]:
    lang = (language or "javascript").strip().lower()
    if lang in JAVASCRIPT_ALIASES:
        return [NODE_BINARY, "-e", _NODE_HARNESS]
    if lang in PYTHON_ALIASES:
        return [sys.executable, "-I", "-c", _PYTHON_HARNESS]
    return None


def execute_code(code: str, language: str = "javascript", timeout: float = SANDBOX_TIMEOUT) -> ExecutionResult:
    """
    Execute a snippet and return what it printed.

    Args:
        code: Snippet source
        language: javascript or python (and common aliases)
        timeout: Seconds before the process is killed

    Returns:
        ExecutionResult; failures are reported in ``error``, never raised
    """
    command = _command_for(language)
    if command is None:
        return ExecutionResult(output="", error=f"Running {language} snippets is not supported")

    try:
        proc = subprocess.run(command, input=code, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        logger.warning(f"Runtime not found for {language}: {command[0]}")
        return ExecutionResult(output="", error=f"Runtime not available: {command[0]}")
    except subprocess.TimeoutExpired:
        logger.info(f"Snippet timed out after {timeout}s")
        return ExecutionResult(output="", error=f"Execution timed out after {timeout:g}s")
    except OSError as e:
        logger.error(f"Could not start sandbox process: {e}")
        return ExecutionResult(output="", error=str(e))

    try:
        payload = json.loads(proc.stdout)
    except ValueError:
        detail = (proc.stderr or proc.stdout or "").strip() or f"exit code {proc.returncode}"
        logger.warning(f"Sandbox produced unreadable output: {detail[:200]}")
        return ExecutionResult(output="", error=detail)

    return ExecutionResult(output=payload.get("output") or "", error=payload.get("error"))

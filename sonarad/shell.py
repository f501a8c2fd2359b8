"""Host shell: runs the report generator as a child process."""

import logging
import os
import queue
import subprocess
import sys
import threading
import time
import webbrowser
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
from sonarad import config

# Result kinds
KIND_OK = 'ok'
KIND_FAILED = 'failed'
KIND_MISSING_REPORT = 'missing-report'
KIND_TIMEOUT = 'timeout'
KIND_CANCELLED = 'cancelled'
KIND_BUSY = 'busy'
KIND_SPAWN_ERROR = 'spawn-error'

_EOF = object()


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    kind: str
    report_path: Optional[str] = None
    output: str = ''
    error: Optional[str] = None
    message: Optional[str] = None
    exit_code: Optional[int] = None
    
    def to_dict(self) -> Dict:
        return asdict(self)


def default_command() -> List[str]:
    """Command that runs the generator with the current interpreter."""
    return [sys.executable, '-u', '-m', 'sonar_ad']


class ReportRunner:
    """Spawn report generations, one at a time, streaming their output."""
    
    def __init__(self, command: Optional[List[str]] = None, generator_args: Optional[List[str]] = None,
                 working_dir: Optional[str] = None, output_name: Optional[str] = None,
                 timeout: Optional[float] = None, domain_timeout: Optional[float] = None):
        """
        Initialize the runner.
        
        Args:
            command: Generator command line (defaults to `python -u -m sonar_ad`)
            generator_args: Extra arguments passed to every invocation (connection options)
            working_dir: Directory the child runs in and the report is written to
            output_name: Report file name inside working_dir
            timeout: Seconds before a generation is killed
            domain_timeout: Seconds before the domain lookup is killed
        """
        self.command = list(command or default_command())
        self.generator_args = list(generator_args or [])
        self.working_dir = os.path.abspath(working_dir or os.getcwd())
        self.output_path = os.path.join(
            self.working_dir, output_name or config.REPORT_SETTINGS['default_output']
        )
        self.timeout = timeout or config.SHELL_SETTINGS['generation_timeout']
        self.domain_timeout = domain_timeout or config.SHELL_SETTINGS['domain_timeout']
        self.logger = logging.getLogger(__name__)
        
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._cancelled = threading.Event()
    
    @property
    def busy(self) -> bool:
        return self._lock.locked()
    
    def get_domain(self) -> Dict:
        """
        Ask the generator for the current domain name.
        
        Returns:
            {'success': True, 'domain': ...} or {'success': False, 'error': ..., 'message': ...}
        """
        cmd = self.command + self.generator_args + ['--show-domain']
        try:
            proc = subprocess.run(
                cmd, cwd=self.working_dir, capture_output=True, text=True,
                timeout=self.domain_timeout, env=self._child_env()
            )
        except subprocess.TimeoutExpired:
            return {'success': False, 'error': 'Domain lookup timed out',
                    'message': f'No answer within {self.domain_timeout} seconds'}
        except OSError as e:
            return {'success': False, 'error': str(e), 'message': 'Failed to start the report generator'}
        
        lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
        if proc.returncode == 0 and lines:
            return {'success': True, 'domain': lines[-1]}
        
        return {
            'success': False,
            'error': proc.stderr.strip() or 'Unable to retrieve domain information',
            'message': 'Make sure this machine can reach a domain controller and the credentials are valid.',
        }
    
    def generate_report(self, on_output: Optional[Callable[[str], None]] = None) -> GenerationResult:
        """
        Run one report generation.
        
        Output lines are passed to on_output as they arrive. Lines from the
        same stream keep their order.
        
        Args:
            on_output: Callback for each output line
        
        Returns:
            GenerationResult describing the outcome
        """
        if not self._lock.acquire(blocking=False):
            return GenerationResult(
                success=False, kind=KIND_BUSY,
                error='A report generation is already running',
                message='Wait for the current generation to finish',
            )
        
        try:
            self._cancelled.clear()
            return self._run(on_output or (lambda line: None))
        finally:
            self._process = None
            self._lock.release()
    
    def cancel(self) -> bool:
        """
        Cancel the running generation.
        
        Returns:
            True if a running child was signalled
        """
        proc = self._process
        if proc is None or proc.poll() is not None:
            return False
        self._cancelled.set()
        self.logger.info("Cancelling report generation")
        proc.terminate()
        return True
    
    @staticmethod
    def open_report(report_path: str) -> Dict:
        """
        Open a generated report in the default browser.
        
        Args:
            report_path: Path of the HTML file
        
        Returns:
            {'success': bool} with an 'error' on failure
        """
        path = Path(report_path)
        if not path.is_file():
            return {'success': False, 'error': 'Report file not found'}
        try:
            opened = webbrowser.open(path.resolve().as_uri())
        except webbrowser.Error as e:
            return {'success': False, 'error': str(e)}
        if not opened:
            return {'success': False, 'error': 'No browser available'}
        return {'success': True}
    
    def _run(self, on_output: Callable[[str], None]) -> GenerationResult:
        cmd = self.command + self.generator_args + ['--output', self.output_path]
        self.logger.info(f"Starting report generation: {self.output_path}")
        
        try:
            proc = subprocess.Popen(
                cmd, cwd=self.working_dir, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                text=True, encoding='utf-8', errors='replace', bufsize=1, env=self._child_env()
            )
        except OSError as e:
            return GenerationResult(
                success=False, kind=KIND_SPAWN_ERROR, error=str(e),
                message='Failed to start the report generator',
            )
        self._process = proc
        
        lines: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(target=self._pump, args=(stream, lines), daemon=True)
            for stream in (proc.stdout, proc.stderr)
        ]
        for reader in readers:
            reader.start()
        
        captured = []
        open_streams = len(readers)
        deadline = time.monotonic() + self.timeout
        timed_out = False
        
        while open_streams:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                proc.kill()
                break
            try:
                line = lines.get(timeout=min(remaining, 0.25))
            except queue.Empty:
                continue
            if line is _EOF:
                open_streams -= 1
                continue
            captured.append(line)
            on_output(line)
        
        try:
            exit_code = proc.wait(timeout=max(deadline - time.monotonic(), 1))
        except subprocess.TimeoutExpired:
            timed_out = True
            proc.kill()
            exit_code = proc.wait()
        
        for reader in readers:
            reader.join(timeout=1)
        output = '\n'.join(captured)
        
        if timed_out:
            self.logger.warning(f"Report generation timed out after {self.timeout}s")
            return GenerationResult(
                success=False, kind=KIND_TIMEOUT, output=output, exit_code=exit_code,
                error=f'Report generation timed out after {self.timeout} seconds',
                message='The generator was stopped',
            )
        
        if self._cancelled.is_set():
            return GenerationResult(
                success=False, kind=KIND_CANCELLED, output=output, exit_code=exit_code,
                error='Report generation cancelled',
            )
        
        if exit_code != 0:
            return GenerationResult(
                success=False, kind=KIND_FAILED, output=output, exit_code=exit_code,
                error=f'Generator exited with code {exit_code}',
                message='Script execution failed',
            )
        
        if not os.path.isfile(self.output_path):
            return GenerationResult(
                success=False, kind=KIND_MISSING_REPORT, output=output, exit_code=exit_code,
                error='Report file was not created',
                message='Generator completed but report file not found',
            )
        
        self.logger.info(f"Report generated: {self.output_path}")
        return GenerationResult(
            success=True, kind=KIND_OK, report_path=self.output_path, output=output,
            exit_code=exit_code, message='Report generated successfully!',
        )
    
    @staticmethod
    def _pump(stream, lines: queue.Queue):
        try:
            for line in stream:
                lines.put(line.rstrip('\r\n'))
        finally:
            stream.close()
            lines.put(_EOF)
    
    @staticmethod
    def _child_env() -> Dict[str, str]:
        env = dict(os.environ)
        env['PYTHONUNBUFFERED'] = '1'
        env['PYTHONIOENCODING'] = 'utf-8'
        return env

"""Local web UI around ReportRunner."""

import argparse
import json
import logging
import queue
import secrets
import threading
import time
import webbrowser
from typing import Iterable, List, Optional
from flask import Flask, Response, jsonify, render_template, request
from sonarad.shell import ReportRunner
from sonarad import config

_DONE = object()

TOKEN_HEADER = "X-SonarAD-Token"


def sse(data, event=None):
    """Format a Server-Sent Event."""
    msg = f"event: {event}\n" if event else ""
    for line in str(data).split("\n"):
        msg += f"data: {line}\n"
    return msg + "\n"


def create_app(runner: Optional[ReportRunner] = None, token: Optional[str] = None,
               allowed_hosts: Optional[Iterable[str]] = None) -> Flask:
    """
    Build the shell application.
    
    API calls must carry the per-launch token, either in the X-SonarAD-Token
    header or as a `token` query parameter (EventSource cannot set headers).
    Requests with a foreign Origin are rejected.
    
    Args:
        runner: Runner used for every request (defaults to one in the cwd)
        token: API token (random per launch when omitted)
        allowed_hosts: Accepted Host header values (any when omitted)
    
    Returns:
        Flask application
    """
    app = Flask(__name__)
    app.config['RUNNER'] = runner or ReportRunner()
    app.config['SHELL_TOKEN'] = token or secrets.token_urlsafe(32)
    app.config['ALLOWED_HOSTS'] = set(allowed_hosts) if allowed_hosts else None
    logger = logging.getLogger(__name__)
    
    def forbidden(reason: str):
        logger.warning(f"Rejected {request.method} {request.path}: {reason}")
        return jsonify({'success': False, 'error': 'Forbidden'}), 403
    
    @app.before_request
    def check_caller():
        allowed = app.config['ALLOWED_HOSTS']
        if allowed is not None and request.host not in allowed:
            return forbidden(f"unexpected host {request.host}")
        if not request.path.startswith("/api/"):
            return None
        
        origin = request.headers.get("Origin")
        if origin and origin.rstrip("/") != request.host_url.rstrip("/"):
            return forbidden(f"cross-origin request from {origin}")
        
        supplied = request.headers.get(TOKEN_HEADER) or request.args.get("token", "")
        if not secrets.compare_digest(supplied.encode(), app.config['SHELL_TOKEN'].encode()):
            return forbidden("missing or invalid token")
        return None
    
    @app.route("/")
    def index():
        return render_template("shell.html", title=config.REPORT_SETTINGS['title'],
                               token=app.config['SHELL_TOKEN'])
    
    @app.route("/api/domain")
    def get_domain():
        return jsonify(app.config['RUNNER'].get_domain())
    
    @app.route("/api/generate")
    def generate():
        current = app.config['RUNNER']
        events: queue.Queue = queue.Queue()
        
        def work():
            try:
                result = current.generate_report(on_output=events.put)
                events.put(('result', result.to_dict()))
            except Exception as e:
                logger.error(f"Report generation crashed: {e}", exc_info=True)
                events.put(('result', {'success': False, 'kind': 'failed', 'error': str(e)}))
            finally:
                events.put(_DONE)
        
        def stream():
            threading.Thread(target=work, daemon=True).start()
            while True:
                item = events.get()
                if item is _DONE:
                    return
                if isinstance(item, tuple):
                    yield sse(json.dumps(item[1]), event=item[0])
                else:
                    yield sse(item, event="output")
        
        return Response(stream(), mimetype="text/event-stream",
                        headers={"Cache-Control": "no-cache"})
    
    @app.route("/api/open", methods=["POST"])
    def open_report():
        # Only the report this shell generates can be opened
        return jsonify(ReportRunner.open_report(app.config['RUNNER'].output_path))
    
    @app.route("/api/cancel", methods=["POST"])
    def cancel():
        return jsonify({"success": app.config['RUNNER'].cancel()})
    
    return app


def _open_browser(url: str):
    time.sleep(1.5)
    try:
        webbrowser.open(url)
    except webbrowser.Error as e:
        logging.getLogger(__name__).warning(f"Could not open browser: {e}")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description='SonarAD host shell: generate and open AD metrics reports from a browser UI',
        epilog='Arguments after "--" are passed to every sonar-ad invocation, '
               'e.g. -- -d example.com -u auditor -t 192.168.1.10',
    )
    parser.add_argument('--host', default=config.SHELL_SETTINGS['host'], help='Address to listen on')
    parser.add_argument('--port', type=int, default=config.SHELL_SETTINGS['port'], help='Port to listen on')
    parser.add_argument('--working-dir', help='Directory the report is written to (default: cwd)')
    parser.add_argument('--timeout', type=float, default=config.SHELL_SETTINGS['generation_timeout'],
                        help='Seconds before a generation is stopped')
    parser.add_argument('--no-browser', action='store_true', help='Do not open the UI in a browser')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('generator_args', nargs=argparse.REMAINDER, help='Arguments for sonar-ad')
    args = parser.parse_args(argv)
    
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    generator_args = args.generator_args
    if generator_args and generator_args[0] == '--':
        generator_args = generator_args[1:]
    
    runner = ReportRunner(generator_args=generator_args, working_dir=args.working_dir,
                          timeout=args.timeout)
    allowed_hosts = {f"{args.host}:{args.port}", f"localhost:{args.port}", f"127.0.0.1:{args.port}"}
    app = create_app(runner, allowed_hosts=allowed_hosts)
    
    url = f"http://{args.host}:{args.port}"
    print(f"[*] SonarAD shell → {url}")
    if not args.no_browser:
        threading.Thread(target=_open_browser, args=(url,), daemon=True).start()
    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()

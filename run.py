import sys
import logging
import argparse
from tmarks import create_app

log = logging.getLogger('werkzeug')
log.disabled = True
cli = sys.modules['flask.cli']
cli.show_server_banner = lambda *x: None


def main() -> None:
    p = argparse.ArgumentParser(prog="tmarks")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8072)
    args = p.parse_args()

    app = create_app()
    app.logger.info("TMarks starting on http://%s:%s", args.host, args.port)
    print(f"TMarks starting on http://{args.host}:{args.port}", flush=True)
    app.run(host=args.host, port=args.port, debug=False)

if __name__ == "__main__":
    main()

"""Entry point: python -m litmusview [port]"""
import logging
import sys
import webbrowser

from litmusview.app import create_app
from litmusview.config import load_settings


def main():
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = load_settings()
    port = settings.port
    if len(sys.argv) > 1:
        try:
            port = int(sys.argv[1])
        except ValueError:
            pass

    app = create_app(settings=settings)
    print(f"Starting litmusview at http://localhost:{port}")
    webbrowser.open(f"http://localhost:{port}")
    app.run(debug=True, port=port, use_reloader=False)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Run the Flask-SocketIO development server."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sleeper.web import create_app, socketio

if __name__ == "__main__":
    port = int(os.environ.get("SLEEPER_PORT", "5001"))
    app = create_app()
    print("\n" + "=" * 50)
    print("SLEEPER SYSTEM")
    print("=" * 50)
    print("\nStarting development server...")
    print(f"Open http://localhost:{port} in your browser")
    print("Press Ctrl+C to stop\n")
    socketio.run(app, debug=True, host="0.0.0.0", port=port, allow_unsafe_werkzeug=True)

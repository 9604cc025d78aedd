#!/usr/bin/env python3
"""
Wolf's Journey Home Game Server

Serves the JSON API for the sentiment mini-game and adventure scene, plus a
Socket.IO channel that reports game state updates and Walrus sync outcomes.
"""

# Gevent monkey patching must happen first
from gevent import monkey
monkey.patch_all()

import logging

import config
from application import create_app, socketio

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = create_app()


def main():
    logger.info(f"Starting Wolf's Journey Home server on port {config.PORT}")
    logger.info(f"Data directory: {app.config['DATA_DIR']} (backend: {app.config['STORAGE_BACKEND']})")
    socketio.run(app, host='0.0.0.0', port=config.PORT, debug=False)


if __name__ == '__main__':
    main()

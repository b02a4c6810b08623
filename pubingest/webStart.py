#  This file is part of PubIngest.
#  PubIngest is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  PubIngest is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with PubIngest.  If not, see <http://www.gnu.org/licenses/>.


import socket
import sys
import threading
import time

import uvicorn

import pubingest
from pubingest import logger
from pubingest.webServe import create_app

SERVER = None


def port_available(host, port):
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


def initialize(options=None):
    global SERVER

    if options is None:
        options = {}

    host = options['http_host']
    port = options['http_port']
    root = str(options.get('http_root', ''))

    if not port_available(host, port):
        print('Failed to start on port: %i. Is something else running?' % port)
        sys.exit(1)

    logger.info("Starting PubIngest web server on http://%s:%d%s/api" % (host, port, root))

    app = create_app(http_root=root)
    config = uvicorn.Config(app, host=host, port=port, log_level='warning',
                            access_log=False, log_config=None)
    SERVER = uvicorn.Server(config)

    thread = threading.Thread(target=SERVER.run, name='WEBSERVER')
    thread.daemon = True
    thread.start()

    pubingest.HTTP_STARTED = True
    return thread


def stop(timeout=5):
    """Ask the web server to finish, waiting up to timeout seconds"""
    if SERVER is None:
        return
    SERVER.should_exit = True
    deadline = time.time() + timeout
    while SERVER.started and time.time() < deadline:
        time.sleep(0.1)
    pubingest.HTTP_STARTED = False

#!/usr/bin/env python3
"""
Run the CAP web service development server.
"""

import logging
import sys
import os

# add the project root to path
sys.path.insert(0, os.path.dirname(__file__))

from oasiscap.web import create_app

if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    app = create_app()
    app.run(debug=True, host='127.0.0.1', port=5000)

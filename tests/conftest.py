"""Shared test fixtures."""

import json
import sys
from pathlib import Path

import requests
from harisekhon.utils import CriticalError

# Add project root to path for plugin and lib imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

API_URL = 'https://api.digitalocean.com/v2'


class FakeResponse(object):
    """Stand-in for requests.Response with just what the API client reads."""

    def __init__(self, json_data=None, status_code=200, reason='OK', text=None):
        self.status_code = status_code
        self.reason = reason
        if text is None:
            text = json.dumps(json_data)
        self.text = text
        self.content = text


class FakeRequestHandler(object):
    """Stand-in for harisekhon.RequestHandler serving canned responses by url.

    Like the real handler, transport errors become CriticalError and every response
    is passed through check_response_code before being returned.
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []
        self.check_response_code = None

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params, timeout, headers))
        response = self.responses[url]
        if isinstance(response, requests.exceptions.RequestException):
            raise CriticalError(response)
        if isinstance(response, Exception):
            raise response
        if self.check_response_code is not None:
            self.check_response_code(response)
        return response


def kernel_json(_id, name, version=None):
    return {'id': _id, 'name': name, 'version': version}


def droplet_json(_id, name, kernel=None):
    return {'id': _id, 'name': name, 'kernel': kernel, 'status': 'active'}


def page(key, items, next_url=None):
    links = {}
    if next_url:
        links = {'pages': {'next': next_url}}
    return FakeResponse({key: items, 'links': links, 'meta': {'total': len(items)}})



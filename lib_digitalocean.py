#!/usr/bin/env python
#  coding=utf-8
#  vim:ts=4:sts=4:sw=4:et
#
#  Author: Hari Sekhon
#  Date: 2026-10-18 10:41:12 +0100 (Sun, 18 Oct 2026)
#
#  https://github.com/harisekhon/nagios-plugins
#
#  License: see accompanying Hari Sekhon LICENSE file
#
#  If you're using my code you're welcome to connect with me on LinkedIn
#  and optionally send me feedback to help steer this or other code I publish
#
#  https://www.linkedin.com/in/harisekhon
#

"""

Minimal Digital Ocean v2 API client for querying droplets and the kernels available to them

Results are paginated by the API, pages are fetched one after another following the links.pages.next URL of each
response until there is none left.

https://developers.digitalocean.com/documentation/v2/

"""

import json
import sys
import traceback
try:
    # pylint: disable=wrong-import-position
    from harisekhon.utils import log, isDict, isList, isStr, CriticalError, UnknownError, support_msg_api
    from harisekhon import RequestHandler
except ImportError as _:
    print(traceback.format_exc(), end='')
    sys.exit(4)

__author__ = 'Hari Sekhon'
__version__ = '0.2.0'

DEFAULT_URL = 'https://api.digitalocean.com/v2'
# API maximum
PER_PAGE = 200


class Kernel(object):
    # pylint: disable=too-few-public-methods

    def __init__(self, _id, name, version=None):
        self.id = _id  # pylint: disable=invalid-name
        self.name = name
        self.version = version

    @classmethod
    def from_json(cls, json_data):
        try:
            kernel = cls(int(json_data['id']), json_data['name'], json_data.get('version'))
        except (AttributeError, KeyError, TypeError, ValueError) as _:
            raise UnknownError('invalid kernel returned by Digital Ocean API: {0}. {1}'\
                               .format(json_data, support_msg_api()))
        if not isStr(kernel.name):
            raise UnknownError('invalid kernel name returned by Digital Ocean API: {0}. {1}'\
                               .format(json_data, support_msg_api()))
        return kernel

    def __eq__(self, other):
        return isinstance(other, Kernel) and (self.id, self.name) == (other.id, other.name)

    def __hash__(self):
        return hash((self.id, self.name))

    def __repr__(self):
        return 'Kernel({0!r}, {1!r})'.format(self.id, self.name)


class Droplet(object):
    # pylint: disable=too-few-public-methods

    def __init__(self, _id, name, kernel=None):
        self.id = _id  # pylint: disable=invalid-name
        self.name = name
        self.kernel = kernel

    @classmethod
    def from_json(cls, json_data):
        try:
            kernel = json_data.get('kernel')
            if kernel is not None:
                kernel = Kernel.from_json(kernel)
            return cls(json_data['id'], json_data['name'], kernel)
        except (AttributeError, KeyError) as _:
            raise UnknownError('invalid droplet returned by Digital Ocean API: {0}. {1}'\
                               .format(json_data, support_msg_api()))

    def __repr__(self):
        return 'Droplet({0!r}, {1!r}, {2!r})'.format(self.id, self.name, self.kernel)


class DigitalOceanAPI(object):

    def __init__(self, token, url=DEFAULT_URL, timeout=None, request_handler=None, before_request=None):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            'Authorization': 'Bearer {0}'.format(token),
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        self.request = request_handler or RequestHandler()
        # Override default RequestHandler() error checking
        self.request.check_response_code = self.check_response_code
        # called before every request, eg. to give each request its own alarm window
        self.before_request = before_request
        # raw response bodies, kept for post-mortem output at the highest verbosity
        self.responses = []

    def check_response_code(self, req):
        self.responses.append(req.text)
        if req.status_code != 200:
            raise UnknownError('Digital Ocean API returned {0} {1}{2}'\
                               .format(req.status_code, req.reason, self.error_message(req)))

    @staticmethod
    def error_message(req):
        try:
            message = json.loads(req.content)['message']
        except (ValueError, KeyError, TypeError):
            return ''
        return ': {0}'.format(message)

    def get(self, url, params=None):
        if self.before_request is not None:
            self.before_request()
        try:
            req = self.request.get(url, params=params, headers=self.headers, timeout=self.timeout)
        except CriticalError as _:
            raise UnknownError('Digital Ocean API request failed: {0}'.format(_))
        try:
            json_data = json.loads(req.content)
        except ValueError as _:
            raise UnknownError('invalid json returned by Digital Ocean API at {0}: {1}. {2}'\
                               .format(url, _, support_msg_api()))
        if not isDict(json_data):
            raise UnknownError('non-dict returned by Digital Ocean API at {0}. {1}'.format(url, support_msg_api()))
        return json_data

    @staticmethod
    def next_url(json_data):
        links = json_data.get('links') or {}
        pages = links.get('pages') or {}
        return pages.get('next')

    def iter_pages(self, path, params=None):
        """ Yields each page of results in turn, first page from path and params, the rest from the next links """
        if params is None:
            params = {'per_page': PER_PAGE}
        url = self.url + path
        page = 0
        while url:
            page += 1
            log.info('fetching page %s: %s', page, url)
            json_data = self.get(url, params=params)
            yield json_data
            # next link already carries the query string
            params = None
            url = self.next_url(json_data)

    def get_all(self, path, key):
        """ Returns the list under key accumulated across all pages, in order """
        results = []
        for json_data in self.iter_pages(path):
            if key not in json_data or not isList(json_data[key]):
                raise UnknownError("'{0}' list not found in Digital Ocean API response. {1}"\
                                   .format(key, support_msg_api()))
            log.debug("%s %s returned in page", len(json_data[key]), key)
            results += json_data[key]
        log.info('%s %s found in total', len(results), key)
        return results

    def get_droplets(self):
        return [Droplet.from_json(droplet) for droplet in self.get_all('/droplets', 'droplets')]

    def get_droplet(self, hostname, droplets=None):
        if droplets is None:
            droplets = self.get_droplets()
        matches = [droplet for droplet in droplets if droplet.name == hostname]
        if not matches:
            raise UnknownError("droplet '{0}' not found".format(hostname))
        if len(matches) > 1:
            raise UnknownError("multiple droplets named '{0}' found (ids: {1})"\
                               .format(hostname, ', '.join([str(droplet.id) for droplet in matches])))
        droplet = matches[0]
        log.info("droplet '%s' id = %s", hostname, droplet.id)
        return droplet

    def get_kernels(self, droplet_id):
        return [Kernel.from_json(kernel)
                for kernel in self.get_all('/droplets/{0}/kernels'.format(droplet_id), 'kernels')]

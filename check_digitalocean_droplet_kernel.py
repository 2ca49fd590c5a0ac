#!/usr/bin/env python
#  coding=utf-8
#  vim:ts=4:sts=4:sw=4:et
#
#  Author: Hari Sekhon
#  Date: 2026-10-18 10:12:35 +0100 (Sun, 18 Oct 2026)
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

Nagios Plugin to check a Digital Ocean droplet is configured to boot the latest kernel available to it
via the Digital Ocean API

Only kernels comparable to the currently configured one are considered, ie. same OS, version and architecture,
and for Ubuntu the same kernel build line too (eg. -generic but not -generic-docker-memlimit), where only the
patch number differs. The kernel with the highest id is the newest.

Returns WARNING if a newer kernel is available, or CRITICAL if --critical is specified

Returns UNKNOWN if the droplet is not found, the API cannot be queried, or no comparable kernels are found

Other modes to help choose and debug:

--list      lists droplets and their configured kernels
--all       lists all kernels available to the droplet, the configured one marked with a *
--matching  lists only the kernels considered comparable to the configured one

Use -vvv to also output the raw API responses

Authentication token can be generated at:

    https://cloud.digitalocean.com/account/api/tokens

"""

import os
import signal
import sys
import traceback
try:
    # pylint: disable=wrong-import-position
    from harisekhon.utils import log, log_option, ERRORS, CriticalError, UnknownError
    from harisekhon import NagiosPlugin
    from lib_digitalocean import DigitalOceanAPI, DEFAULT_URL
    from lib_kernel import build_kernel_filter, comparable_kernels, parse_kernel_name, select_kernel, kernel_status
except ImportError as _:
    print(traceback.format_exc(), end='')
    sys.exit(4)

__author__ = 'Hari Sekhon'
__version__ = '0.2.0'

# seconds allowed on top of each request timeout for decoding and reporting before the alarm fires
ALARM_MARGIN = 5


class CheckDigitalOceanDropletKernel(NagiosPlugin):

    def __init__(self):
        super().__init__()
        self.label = 'DO KERNEL'
        self.msg = 'DO KERNEL msg not defined yet'
        self.key = None
        self.hostname = None
        self.url = DEFAULT_URL
        self.mode = 'check'
        self.critical_mismatch = False
        self.api = None

    def add_options(self):
        self.add_opt('-k', '--key',
                     default=os.getenv('DIGITALOCEAN_TOKEN', os.getenv('DIGITALOCEAN_ACCESS_TOKEN')),
                     help=r'Digital Ocean API token ($DIGITALOCEAN_TOKEN, $DIGITALOCEAN_ACCESS_TOKEN)')
        self.add_opt('-H', '--hostname', help='Droplet name to check')
        self.add_opt('-c', '--critical', action='store_true',
                     help='Return CRITICAL instead of WARNING when a newer kernel is available')
        self.add_opt('-l', '--list', action='store_true', help='List droplets and their configured kernels')
        self.add_opt('-a', '--all', action='store_true',
                     help='List all kernels available to the droplet, configured kernel marked with a *')
        self.add_opt('-m', '--matching', action='store_true',
                     help='List kernels comparable to the configured kernel, configured kernel marked with a *')
        self.add_opt('-U', '--url', default=os.getenv('DIGITALOCEAN_API_URL', DEFAULT_URL),
                     help=r'Digital Ocean API base url ($DIGITALOCEAN_API_URL, default: {0})'.format(DEFAULT_URL))

    def process_options(self):
        self.no_args()
        self.key = self.get_opt('key')
        if not self.key:
            self.usage('--key not defined and $DIGITALOCEAN_TOKEN not set')
        modes = [mode for mode in ('list', 'all', 'matching') if self.get_opt(mode)]
        if len(modes) > 1:
            self.usage('--list, --all and --matching are mutually exclusive')
        if modes:
            self.mode = modes[0]
        log.info('mode: %s', self.mode)
        self.hostname = self.get_opt('hostname')
        if self.mode != 'list':
            if not self.hostname:
                self.usage('--hostname not defined')
            log_option('hostname', self.hostname)
        self.critical_mismatch = bool(self.get_opt('critical'))
        self.url = self.get_opt('url')
        log_option('url', self.url)

    def run(self):
        # replaces the framework's whole run alarm, which would otherwise fire after a single request timeout
        signal.signal(signal.SIGALRM, self.timed_out)
        self.api = DigitalOceanAPI(self.key, url=self.url, timeout=self.timeout, before_request=self.rearm_alarm)
        try:
            if self.mode == 'list':
                self.output(self.list_droplets(self.api.get_droplets()))
            droplet = self.api.get_droplet(self.hostname)
            kernels = self.api.get_kernels(droplet.id)
            if self.mode in ('all', 'matching'):
                self.output(self.list_kernels(droplet, kernels, matching=self.mode == 'matching'))
            (status, msg) = self.check(droplet, kernels)
        except (CriticalError, UnknownError) as _:
            (status, msg) = ('UNKNOWN', str(_))
        self.report(status, msg)

    def rearm_alarm(self):
        """ Gives each paged request its own window, so the run as a whole is bounded by their sum """
        alarm = int(self.timeout) + ALARM_MARGIN
        log.debug('setting alarm to %s secs', alarm)
        signal.alarm(alarm)

    def timed_out(self, _discarded, _discarded2):
        """ Called by signal.alarm when a request outlives its window """
        self.report('UNKNOWN', 'Digital Ocean API did not respond within {0} seconds'.format(self.timeout))

    @staticmethod
    def list_droplets(droplets):
        lines = []
        for droplet in droplets:
            kernel = '-'
            if droplet.kernel is not None:
                kernel = droplet.kernel.name
            lines.append('{0}\t{1}'.format(droplet.name, kernel))
        return lines

    @staticmethod
    def list_kernels(droplet, kernels, matching=False):
        current = droplet.kernel
        if matching:
            if current is None:
                raise UnknownError("droplet '{0}' has no configurable kernel".format(droplet.name))
            kernels = comparable_kernels(kernels, build_kernel_filter(current.name))
        lines = []
        for kernel in kernels:
            marker = ' '
            if current is not None and kernel.id == current.id:
                marker = '*'
            lines.append('{0}\t{1}\t{2}'.format(marker, kernel.id, kernel.name))
        return lines

    def check(self, droplet, kernels):
        current = droplet.kernel
        if current is None:
            raise UnknownError("droplet '{0}' has no configurable kernel, it is managed internally"\
                               .format(droplet.name))
        log.info("configured kernel = %s '%s' (%s)", current.id, current.name, parse_kernel_name(current.name))
        selection = select_kernel(current, kernels)
        return kernel_status(selection, critical=self.critical_mismatch, hostname=droplet.name)

    def diagnostics(self):
        if self.verbose < 3 or self.api is None:
            return
        for (index, body) in enumerate(self.api.responses, start=1):
            print('\nresponse {0}:\n{1}'.format(index, body))

    def output(self, lines):
        for line in lines:
            print(line)
        self.diagnostics()
        sys.exit(ERRORS['OK'])

    def report(self, status, msg):
        self.msg = msg
        print('{0} {1}: {2}'.format(self.label, status, msg))
        self.diagnostics()
        sys.exit(ERRORS[status])


def main():
    CheckDigitalOceanDropletKernel().main()


if __name__ == '__main__':
    main()

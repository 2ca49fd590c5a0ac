#!/usr/bin/env python
#  coding=utf-8
#  vim:ts=4:sts=4:sw=4:et
#
#  Author: Hari Sekhon
#  Date: 2026-10-18 11:02:47 +0100 (Sun, 18 Oct 2026)
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

Kernel matching logic for Digital Ocean droplets

A droplet is offered a long list of kernels, most of which are for other distributions, versions or architectures.
Only kernels of the same family as the one currently configured are comparable:

- same OS, version and architecture (first 3 whitespace separated fields of the kernel name)
- for Ubuntu, also the same build line, only the patch number may differ, so that variants such as
  'vmlinuz-4.4.0-85-generic-docker-memlimit' are not treated as upgrades for 'vmlinuz-4.4.0-31-generic'

The newest comparable kernel is the one with the highest id.

Caveat: names other than Ubuntu which write the version and arch dotted together eg. 'CentOS 7.x64 vmlinuz-3.10.0-327'
have the build string as their 3rd field, so the prefix is the whole name and in practice only that exact kernel is
comparable, meaning such droplets will never be reported as having a newer kernel available.

"""

import logging
import re
import sys
import traceback
try:
    # pylint: disable=wrong-import-position
    from harisekhon.utils import log
except ImportError as _:
    print(traceback.format_exc(), end='')
    sys.exit(4)

__author__ = 'Hari Sekhon'
__version__ = '0.2.0'

MATCH = 'match'
MISMATCH = 'mismatch'
EMPTY = 'empty'

PREFIX = 'prefix'
BUILD_LINE = 'build_line'

PATCH_REGEX = '[0-9]+'
PATCH_INDEX = 2

patch_regex = re.compile('^' + PATCH_REGEX + '$')


class KernelName(object):
    """ Kernel name broken down into its fields, any of which may be None if not present """
    # pylint: disable=too-few-public-methods,too-many-instance-attributes

    def __init__(self, fields):
        self.fields = fields
        self.os_fields = fields
        self.family = None
        self.version = None
        self.arch = None
        self.build = None
        self.patch = None

    @property
    def os_prefix(self):
        return ' '.join(self.os_fields)

    @property
    def build_parts(self):
        if self.build is None:
            return None
        return self.build.split('-')

    def is_ubuntu(self):
        return self.family is not None and self.family.startswith('Ubuntu')

    def __repr__(self):
        return "KernelName(family={0!r}, version={1!r}, arch={2!r}, build={3!r}, patch={4!r})"\
               .format(self.family, self.version, self.arch, self.build, self.patch)


def is_build_string(field):
    return field.startswith('vmlinuz')


def parse_kernel_name(name):
    """
    Breaks a kernel name down into its OS fields and build string

    Normally the first 3 fields are '{OS} {version} {arch}' and the 4th is the build string. Some names write the
    version and arch dotted together eg. 'Ubuntu 16.04.x64 vmlinuz-4.4.0-31-generic', in which case the build string
    is the 3rd field.
    """
    fields = name.split()
    kernel_name = KernelName(fields)
    if len(fields) > 3:
        (kernel_name.os_fields, kernel_name.build) = (fields[:3], fields[3])
    elif len(fields) == 3 and is_build_string(fields[2]):
        (kernel_name.os_fields, kernel_name.build) = (fields[:2], fields[2])
    os_fields = kernel_name.os_fields
    if os_fields:
        kernel_name.family = os_fields[0]
    if len(os_fields) == 3:
        kernel_name.version = os_fields[1]
        kernel_name.arch = os_fields[2]
    elif len(os_fields) == 2:
        # eg. 16.04.x64
        (kernel_name.version, _, kernel_name.arch) = os_fields[1].rpartition('.')
        if not kernel_name.version:
            kernel_name.version = kernel_name.arch
            kernel_name.arch = None
    build_parts = kernel_name.build_parts
    if build_parts is not None and len(build_parts) > PATCH_INDEX:
        kernel_name.patch = build_parts[PATCH_INDEX]
    return kernel_name


class KernelFilter(object):
    """
    Selects the kernels comparable to a given kernel

    A 'prefix' filter matches any kernel name starting with the prefix.

    A 'build_line' filter matches kernels with exactly the same OS fields and a build string of the same segments,
    only the patch segment allowed to be any number, and nothing after it.
    """

    def __init__(self, prefix, build_parts=None):
        self.prefix = prefix
        self.build_parts = build_parts
        if build_parts is None:
            self.kind = PREFIX
        else:
            self.kind = BUILD_LINE

    @property
    def pattern(self):
        """ regex string to use with re.match() against a kernel name """
        pattern = re.escape(self.prefix)
        if self.kind == BUILD_LINE:
            build = '-'.join([PATCH_REGEX if part is None else re.escape(part) for part in self.build_parts])
            pattern += ' ' + build + '$'
        return pattern

    def matches(self, name):
        # fields are compared single space separated, same as the prefix was built
        if self.kind == PREFIX:
            return ' '.join(name.split()).startswith(self.prefix)
        candidate = parse_kernel_name(name)
        if candidate.os_prefix != self.prefix or candidate.build is None:
            return False
        # nothing may follow the build string
        if len(candidate.fields) != len(candidate.os_fields) + 1:
            return False
        build_parts = candidate.build_parts
        if len(build_parts) != len(self.build_parts):
            return False
        for (part, expected) in zip(build_parts, self.build_parts):
            if expected is None:
                if not patch_regex.match(part):
                    return False
            elif part != expected:
                return False
        return True

    def __str__(self):
        if self.kind == BUILD_LINE:
            build = '-'.join([PATCH_REGEX if part is None else part for part in self.build_parts])
            return '{0} {1}$'.format(self.prefix, build)
        return self.prefix

    def __repr__(self):
        return 'KernelFilter({0!r}, kind={1})'.format(str(self), self.kind)


def build_kernel_filter(name):
    """ Builds the KernelFilter for the kernels comparable to the kernel with the given name """
    kernel_name = parse_kernel_name(name)
    # truncated names give a partial prefix rather than an error
    prefix = ' '.join(kernel_name.fields[:3])
    if not kernel_name.is_ubuntu():
        log.debug("kernel filter for '%s' = prefix '%s'", name, prefix)
        return KernelFilter(prefix)
    if kernel_name.build is None:
        log.debug("no build string found in Ubuntu kernel '%s', falling back to prefix '%s'", name, prefix)
        return KernelFilter(prefix)
    build_parts = kernel_name.build_parts
    if kernel_name.patch is not None:
        build_parts[PATCH_INDEX] = None
    else:
        log.debug("no patch segment in build string '%s', matching it literally", kernel_name.build)
    kernel_filter = KernelFilter(kernel_name.os_prefix, build_parts)
    log.debug("kernel filter for '%s' = '%s'", name, kernel_filter)
    return kernel_filter


class KernelSelection(object):
    """ Outcome of comparing the configured kernel against the comparable kernels on offer """
    # pylint: disable=too-few-public-methods

    def __init__(self, result, current, newest, comparable, kernel_filter):
        self.result = result
        self.current = current
        self.newest = newest
        self.comparable = comparable
        self.kernel_filter = kernel_filter

    def __repr__(self):
        return 'KernelSelection(result={0}, current={1!r}, newest={2!r}, comparable={3})'\
               .format(self.result, self.current, self.newest, len(self.comparable))


def comparable_kernels(kernels, kernel_filter):
    """ Returns kernels matching the filter, newest (highest id) first """
    comparable = [kernel for kernel in kernels if kernel_filter.matches(kernel.name)]
    comparable.sort(key=lambda kernel: kernel.id, reverse=True)
    if log.isEnabledFor(logging.DEBUG):
        log.debug("%s of %s kernels match filter '%s'", len(comparable), len(kernels), kernel_filter)
        for kernel in comparable:
            log.debug('%s\t%s', kernel.id, kernel.name)
    return comparable


def select_kernel(current, kernels, kernel_filter=None):
    if kernel_filter is None:
        kernel_filter = build_kernel_filter(current.name)
    comparable = comparable_kernels(kernels, kernel_filter)
    if not comparable:
        log.info("no kernels found matching filter '%s'", kernel_filter)
        return KernelSelection(EMPTY, current, None, comparable, kernel_filter)
    newest = comparable[0]
    log.info("newest comparable kernel = %s '%s'", newest.id, newest.name)
    if current.id == newest.id:
        result = MATCH
    else:
        result = MISMATCH
    return KernelSelection(result, current, newest, comparable, kernel_filter)


def kernel_status(selection, critical=False, hostname=None):
    """ Returns (status, message) for a KernelSelection, status being a key of harisekhon.utils.ERRORS """
    msg = ''
    if hostname:
        msg = "droplet '{0}' ".format(hostname)
    if selection.result == MATCH:
        return ('OK', msg + "kernel '{0}' is the latest available".format(selection.current.name))
    if selection.result == MISMATCH:
        status = 'CRITICAL' if critical else 'WARNING'
        return (status, msg + "kernel '{0}' is configured but newer kernel '{1}' is available"\
                              .format(selection.current.name, selection.newest.name))
    return ('UNKNOWN', msg + "no kernels matching '{0}' found for configured kernel '{1}'"\
                             .format(selection.kernel_filter, selection.current.name))

"""
Tests for client IP resolution.

Covers header precedence, X-Forwarded-For parsing, socket address
normalization and the sentinel values returned when nothing is usable.
"""

import logging

import pytest
from werkzeug.datastructures import Headers

from ip_resolver import (
    IP_ERROR,
    IP_UNAVAILABLE,
    SOURCE_CLOUDFLARE,
    SOURCE_ERROR,
    SOURCE_FORWARDED_FOR,
    SOURCE_NONE,
    SOURCE_REAL_IP,
    SOURCE_SOCKET,
    IPResolution,
    normalize_socket_address,
    resolve_client_ip,
)


# ==============================================================================
# TESTS: HEADER PRECEDENCE
# ==============================================================================


class TestHeaderPrecedence:
    """First present signal wins; later ones are never consulted."""

    def test_cf_connecting_ip_wins_over_everything(self):
        headers = Headers({
            'CF-Connecting-IP': '203.0.113.7',
            'X-Forwarded-For': '1.2.3.4, 5.6.7.8',
            'X-Real-IP': '9.8.7.6',
        })

        result = resolve_client_ip(headers, '::ffff:10.0.0.5')

        assert result == IPResolution('203.0.113.7', SOURCE_CLOUDFLARE)

    def test_cf_connecting_ip_is_used_verbatim(self):
        result = resolve_client_ip({'cf-connecting-ip': ' not-an-ip '}, None)

        assert result.ip == ' not-an-ip '

    def test_forwarded_for_takes_first_entry_trimmed(self):
        result = resolve_client_ip({'x-forwarded-for': '1.2.3.4, 5.6.7.8'}, '10.0.0.1')

        assert result == IPResolution('1.2.3.4', SOURCE_FORWARDED_FOR)

    def test_forwarded_for_beats_real_ip(self):
        headers = {'x-forwarded-for': '  1.2.3.4  ', 'x-real-ip': '9.8.7.6'}

        assert resolve_client_ip(headers, None).ip == '1.2.3.4'

    def test_repeated_forwarded_for_lines_form_one_chain(self):
        headers = Headers([
            ('X-Forwarded-For', '198.51.100.1'),
            ('X-Forwarded-For', '10.0.0.2'),
        ])

        assert resolve_client_ip(headers, None).ip == '198.51.100.1'

    def test_blank_first_forwarded_entry_falls_through(self):
        headers = {'x-forwarded-for': ' , 5.6.7.8', 'x-real-ip': '9.8.7.6'}

        assert resolve_client_ip(headers, None) == IPResolution('9.8.7.6', SOURCE_REAL_IP)

    def test_real_ip_used_verbatim(self):
        result = resolve_client_ip({'x-real-ip': '9.8.7.6'}, None)

        assert result == IPResolution('9.8.7.6', SOURCE_REAL_IP)

    def test_empty_header_values_are_skipped(self):
        headers = {'cf-connecting-ip': '', 'x-forwarded-for': '', 'x-real-ip': ''}

        assert resolve_client_ip(headers, '192.0.2.10').source == SOURCE_SOCKET

    @pytest.mark.parametrize('name', ['X-REAL-IP', 'x-real-ip', 'X-Real-Ip'])
    def test_header_names_are_case_insensitive(self, name):
        assert resolve_client_ip({name: '9.8.7.6'}, None).ip == '9.8.7.6'


# ==============================================================================
# TESTS: SOCKET FALLBACK
# ==============================================================================


class TestSocketFallback:

    def test_ipv4_mapped_prefix_is_stripped(self):
        result = resolve_client_ip({}, '::ffff:10.0.0.5')

        assert result == IPResolution('10.0.0.5', SOURCE_SOCKET)

    def test_ipv6_loopback_becomes_ipv4_loopback(self):
        assert resolve_client_ip({}, '::1').ip == '127.0.0.1'

    def test_plain_ipv4_passes_through(self):
        assert resolve_client_ip({}, '192.0.2.10').ip == '192.0.2.10'

    def test_substring_match_is_rewritten(self):
        """The loopback rewrite applies anywhere in the string, not only to '::1' itself."""
        assert normalize_socket_address('fe80::1') == 'fe80127.0.0.1'

    @pytest.mark.parametrize('remote_addr', [None, ''])
    def test_no_signal_returns_unavailable_sentinel(self, remote_addr):
        result = resolve_client_ip({}, remote_addr)

        assert result == IPResolution(IP_UNAVAILABLE, SOURCE_NONE)
        assert not result.resolved


# ==============================================================================
# TESTS: FAILURES
# ==============================================================================


class BrokenHeaders(Headers):
    def get(self, *args, **kwargs):
        raise RuntimeError('header access exploded')


class TestFailures:

    def test_lookup_error_returns_error_sentinel(self, caplog):
        with caplog.at_level(logging.ERROR, logger='ip_resolver'):
            result = resolve_client_ip(BrokenHeaders(), '10.0.0.1')

        assert result == IPResolution(IP_ERROR, SOURCE_ERROR)
        assert not result.resolved
        assert 'Client IP lookup failed' in caplog.text

    def test_resolved_flag_for_real_signal(self):
        assert resolve_client_ip({'x-real-ip': '9.8.7.6'}, None).resolved

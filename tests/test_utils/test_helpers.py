"""Tests for logging setup and helper functions"""

import json
import logging
import socket
from collections import namedtuple

import psutil
import pytest
from pythonjsonlogger.json import JsonFormatter

from sysalert.utils.helpers import format_duration, get_public_ipv4, safe_divide
from sysalert.utils.logger import get_logger, setup_logger

Address = namedtuple('Address', 'family address netmask broadcast ptp')


@pytest.mark.parametrize("seconds,expected", [
    (0, '0s'),
    (59, '59s'),
    (60, '1m'),
    (3725, '1h 2m'),
    (87300, '1d 15m'),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_safe_divide():
    assert safe_divide(1, 4) == 0.25
    assert safe_divide(1, 0) == 0.0
    assert safe_divide(None, 4, default=-1) == -1


class TestPublicIPv4:
    def test_first_global_address(self, monkeypatch):
        interfaces = {
            'lo': [Address(socket.AF_INET, '127.0.0.1', None, None, None)],
            'eth0': [
                Address(socket.AF_INET6, '2001:db8::1', None, None, None),
                Address(socket.AF_INET, '10.0.0.5', None, None, None),
                Address(socket.AF_INET, '8.8.4.4', None, None, None),
            ],
        }
        monkeypatch.setattr(psutil, 'net_if_addrs', lambda: interfaces)

        assert get_public_ipv4() == '8.8.4.4'

    def test_no_global_address(self, monkeypatch):
        monkeypatch.setattr(psutil, 'net_if_addrs',
                            lambda: {'lo': [Address(socket.AF_INET, '127.0.0.1', None, None, None)]})

        assert get_public_ipv4() == 'unknown'


class TestLogger:
    def test_text_logger(self):
        logger = setup_logger({'agent': {'log_level': 'debug'}})

        assert logger.name == 'sysalert'
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert len(logger.handlers) == 1
        assert get_logger('Scheduler').name == 'sysalert.Scheduler'

    def test_json_file_logger(self, tmp_path):
        log_file = tmp_path / 'logs' / 'sysalert.log'
        logger = setup_logger({'agent': {'log_level': 'INFO', 'log_format': 'json', 'log_file': str(log_file)}})

        get_logger('test').info("cycle finished")
        for handler in logger.handlers:
            handler.flush()

        assert all(isinstance(handler.formatter, JsonFormatter) for handler in logger.handlers)
        record = json.loads(log_file.read_text().splitlines()[-1])
        assert record['message'] == 'cycle finished'
        assert record['level'] == 'INFO'
        assert record['logger'] == 'sysalert.test'

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

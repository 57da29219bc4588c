"""Utility helper functions"""

import ipaddress
import socket
import platform

import psutil


def get_hostname():
    """Get system hostname"""
    try:
        return socket.gethostname()
    except OSError:
        return platform.node() or "unknown"


def get_public_ipv4():
    """First globally routable IPv4 address of any interface, or 'unknown'"""
    try:
        interfaces = psutil.net_if_addrs()
    except OSError:
        return "unknown"

    for addresses in interfaces.values():
        for addr in addresses:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_global:
                return str(ip)
    return "unknown"


def format_duration(seconds):
    """Format a duration in seconds as e.g. '1d 2h 3m'"""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"

    parts = []
    for unit, size in (('d', 86400), ('h', 3600), ('m', 60)):
        if seconds >= size:
            parts.append(f"{seconds // size}{unit}")
            seconds %= size
    return " ".join(parts)


def safe_divide(a, b, default=0.0):
    """Safely divide two numbers, returning default if division by zero"""
    try:
        if b == 0:
            return default
        return a / b
    except (TypeError, ZeroDivisionError):
        return default

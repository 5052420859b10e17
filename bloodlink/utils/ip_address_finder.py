import ipaddress

from fastapi import Request

# Proxy headers checked in order of preference
_IP_HEADERS = ("cf-connecting-ip", "x-real-ip", "x-forwarded-for")


def get_client_ip(request: Request) -> str:
    """Extract the caller's IP address, honouring common proxy headers"""
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        try:
            ipaddress.ip_address(candidate)
        except ValueError:
            continue
        return candidate

    if request.client:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "unknown")

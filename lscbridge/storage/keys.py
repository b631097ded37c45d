def _base(namespace: str, scan_id: str, host_ip: str) -> str:
    return f"{namespace.rstrip('/')}/{scan_id}/{host_ip}"

def request_key(namespace: str, scan_id: str, host_ip: str) -> str:
    return f"{_base(namespace, scan_id, host_ip)}/request"

def status_key(namespace: str, scan_id: str, host_ip: str) -> str:
    return f"{_base(namespace, scan_id, host_ip)}/status"

def abort_key(namespace: str, scan_id: str) -> str:
    return f"{namespace.rstrip('/')}/{scan_id}/abort"

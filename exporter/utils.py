import os
import ctypes.util
from typing import Optional, Tuple

# open-vm-tools installs into the distro libdir, the classic VMware Tools
# tarball into /usr/lib/vmware-tools
GUESTLIB_CANDIDATES = [
    '/usr/lib/x86_64-linux-gnu/libvmGuestLib.so.0',
    '/usr/lib64/libvmGuestLib.so.0',
    '/usr/lib/libvmGuestLib.so.0',
    '/usr/lib/vmware-tools/lib64/libvmGuestLib.so/libvmGuestLib.so',
    '/usr/lib/vmware-tools/lib32/libvmGuestLib.so/libvmGuestLib.so',
]


def find_guestlib() -> Optional[str]:
    name = ctypes.util.find_library('vmGuestLib')
    if name:
        return name
    for path in GUESTLIB_CANDIDATES:
        if os.path.exists(path):
            return path
    return None


def parse_listen_address(address: str) -> Tuple[str, int]:
    # ':9263' -> ('0.0.0.0', 9263), '[::1]:9263' -> ('::1', 9263)
    host, sep, port = address.rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f'invalid listen address <{address}>, expected [host]:port')
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    elif ':' in host:
        raise ValueError(f'invalid listen address <{address}>, IPv6 hosts need brackets')
    port = int(port)
    if not 0 < port < 65536:
        raise ValueError(f'invalid port {port} in listen address <{address}>')
    return host or '0.0.0.0', port


if __name__ == '__main__':
    print(find_guestlib())
    print(parse_listen_address(':9263'))

import pytest

import utils
from utils import parse_listen_address, find_guestlib


@pytest.mark.parametrize('address, expected', [
    (':9263', ('0.0.0.0', 9263)),
    ('127.0.0.1:9100', ('127.0.0.1', 9100)),
    ('localhost:80', ('localhost', 80)),
    ('[::]:9263', ('::', 9263)),
])
def test_parse_listen_address(address, expected):
    assert parse_listen_address(address) == expected


@pytest.mark.parametrize('address', ['9263', 'host:', ':http', '::1:9263', ':70000', ':0'])
def test_parse_listen_address_invalid(address):
    with pytest.raises(ValueError):
        parse_listen_address(address)


def test_find_guestlib_prefers_linker(monkeypatch):
    monkeypatch.setattr(utils.ctypes.util, 'find_library', lambda name: 'libvmGuestLib.so.0')
    assert find_guestlib() == 'libvmGuestLib.so.0'


def test_find_guestlib_falls_back_to_known_paths(monkeypatch, tmp_path):
    lib = tmp_path / 'libvmGuestLib.so'
    lib.write_bytes(b'')
    monkeypatch.setattr(utils.ctypes.util, 'find_library', lambda name: None)
    monkeypatch.setattr(utils, 'GUESTLIB_CANDIDATES', [str(tmp_path / 'missing.so'), str(lib)])
    assert find_guestlib() == str(lib)


def test_find_guestlib_nothing(monkeypatch):
    monkeypatch.setattr(utils.ctypes.util, 'find_library', lambda name: None)
    monkeypatch.setattr(utils, 'GUESTLIB_CANDIDATES', [])
    assert find_guestlib() is None

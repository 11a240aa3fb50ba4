"""
Thin ctypes binding to the VMware Guest SDK (libvmGuestLib.so).

Only what the exporter needs: open a handle, refresh it, and read
uint32/uint64 statistics through `VMGuestLib_Get*` out-parameters.
"""
import ctypes
import logging

from utils import find_guestlib

logger = logging.getLogger(__name__)

ERROR_SUCCESS = 0
ERROR_OTHER = 1
ERROR_NOT_RUNNING_IN_VM = 2
ERROR_NOT_ENABLED = 3
ERROR_NOT_AVAILABLE = 4
ERROR_NO_INFO = 5
ERROR_MEMORY = 6
ERROR_BUFFER_TOO_SMALL = 7
ERROR_INVALID_HANDLE = 8
ERROR_INVALID_ARG = 9
ERROR_UNSUPPORTED_VERSION = 10

_ERROR_NAMES = {
    ERROR_SUCCESS: 'success',
    ERROR_OTHER: 'other error',
    ERROR_NOT_RUNNING_IN_VM: 'not running in a VM',
    ERROR_NOT_ENABLED: 'guest statistics gathering not enabled',
    ERROR_NOT_AVAILABLE: 'requested statistic not available',
    ERROR_NO_INFO: 'UpdateInfo() has not been called',
    ERROR_MEMORY: 'not enough memory',
    ERROR_BUFFER_TOO_SMALL: 'buffer too small',
    ERROR_INVALID_HANDLE: 'invalid handle',
    ERROR_INVALID_ARG: 'invalid argument',
    ERROR_UNSUPPORTED_VERSION: 'unsupported version',
}


class VMGuestLibError(Exception):
    def __init__(self, code: int, message: str = None) -> None:
        self.code = code
        self.message = message or _ERROR_NAMES.get(code, f'unknown error {code}')
        super().__init__(f'vmguestlib: {self.message} (code {code})')


class Session(object):
    """An open guest-info handle.

    Not thread safe; callers serialize refresh and reads.
    """

    def __init__(self, lib, handle) -> None:
        self._lib = lib
        self._handle = handle
        self._session_id = None

    @classmethod
    def open(cls, library_path=None) -> 'Session':
        path = library_path or find_guestlib()
        if not path:
            raise VMGuestLibError(ERROR_OTHER, 'libvmGuestLib not found, is open-vm-tools installed?')
        try:
            lib = ctypes.CDLL(path)
        except OSError as e:
            raise VMGuestLibError(ERROR_OTHER, f'cannot load {path}: {e}') from e
        lib.VMGuestLib_GetErrorText.restype = ctypes.c_char_p

        handle = ctypes.c_void_p()
        cls._check(lib, lib.VMGuestLib_OpenHandle(ctypes.byref(handle)))
        logger.debug('opened vmguestlib handle from %s', path)

        session = cls(lib, handle)
        try:
            # prime the session id so the first scrape doesn't count an event
            session.refresh_info()
        except VMGuestLibError:
            session.close()
            raise
        return session

    @staticmethod
    def _check(lib, code: int) -> None:
        if code == ERROR_SUCCESS:
            return
        text = None
        try:
            raw = lib.VMGuestLib_GetErrorText(code)
            if raw:
                text = raw.decode(errors='replace')
        except AttributeError:
            pass
        raise VMGuestLibError(code, text)

    def refresh_info(self) -> bool:
        """Update the cached statistics.

        Returns True when the session id changed since the last refresh,
        which happens after a vMotion, a snapshot revert and the like.
        """
        if self._handle is None:
            raise VMGuestLibError(ERROR_INVALID_HANDLE)
        self._check(self._lib, self._lib.VMGuestLib_UpdateInfo(self._handle))

        sid = ctypes.c_uint64()
        self._check(self._lib, self._lib.VMGuestLib_GetSessionId(
            self._handle, ctypes.byref(sid)))
        previous, self._session_id = self._session_id, sid.value
        return previous is not None and previous != sid.value

    def read(self, function: str, ctype=ctypes.c_uint64) -> int:
        if self._handle is None:
            raise VMGuestLibError(ERROR_INVALID_HANDLE)
        fn = getattr(self._lib, f'VMGuestLib_{function}', None)
        if fn is None:
            raise VMGuestLibError(ERROR_NOT_AVAILABLE, f'{function} missing from library')
        out = ctype()
        self._check(self._lib, fn(self._handle, ctypes.byref(out)))
        return out.value

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._check(self._lib, self._lib.VMGuestLib_CloseHandle(handle))

    @property
    def session_id(self):
        return self._session_id


if __name__ == '__main__':
    s = Session.open()
    for f, ctype in [('GetHostMemUsedMB', ctypes.c_uint64), ('GetCpuUsedMs', ctypes.c_uint64),
                     ('GetMemBalloonedMB', ctypes.c_uint32), ('GetMemUsedMB', ctypes.c_uint32)]:
        print(f, s.read(f, ctype))
    s.close()

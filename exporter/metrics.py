import ctypes
from typing import NamedTuple
from prometheus_client.core import GaugeMetricFamily, CounterMetricFamily

NAMESPACE = 'vmwareguest_'

GAUGE = 'gauge'
COUNTER = 'counter'

_FAMILIES = {
    GAUGE: GaugeMetricFamily,
    COUNTER: CounterMetricFamily,
}


class Getter(object):
    """Reads one raw statistic from a guest-info session."""
    CTYPE = ctypes.c_uint64

    def __init__(self, function: str) -> None:
        self.function = function

    def read(self, session):
        return session.read(self.function, self.CTYPE)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.function!r})'


class U32Getter(Getter):
    CTYPE = ctypes.c_uint32


class U64Getter(Getter):
    CTYPE = ctypes.c_uint64


class MetricSpec(NamedTuple):
    getter: Getter
    name: str
    desc: str
    multiplier: float
    unit: str
    mtype: str

    @property
    def prometheus_name(self) -> str:
        name = NAMESPACE + self.name
        if self.unit:
            name += '_' + self.unit
        return name

    def get(self, session) -> float:
        return float(self.getter.read(session)) * self.multiplier

    def family(self, value=None):
        return _FAMILIES[self.mtype](self.prometheus_name, self.desc, value=value)


def mb_metric(getter, name, desc) -> MetricSpec:
    # underlying value is in MB
    return MetricSpec(getter, name, desc, 1024 * 1024, 'bytes', GAUGE)


def mhz_metric(getter, name, desc) -> MetricSpec:
    return MetricSpec(getter, name, desc, 1024 * 1024, 'hertz', GAUGE)


def unitless_metric(getter, name, desc) -> MetricSpec:
    return MetricSpec(getter, name, desc, 1, '', GAUGE)


def ms_metric(getter, name, desc) -> MetricSpec:
    # assumes every millisecond statistic the guest lib returns is a counter
    return MetricSpec(getter, name, desc, 0.001, 'seconds', COUNTER)


UNIT_HELPERS = {
    'MB': mb_metric,
    'MHz': mhz_metric,
    'ms': ms_metric,
    '': unitless_metric,
}


""" ---------- metrics define start ---------- """

METRIC_TABLE = [
    (U64Getter('GetHostMemUnmappedMB'), 'HostMemUnmapped',
     'total amount of unmapped memory on the host', 'MB'),
    (U64Getter('GetHostMemMappedMB'), 'HostMemMapped',
     'total amount of mapped memory on the host', 'MB'),
    (U64Getter('GetHostMemKernOvhdMB'), 'HostMemKernOvhd',
     'total amount of host kernel memory overhead', 'MB'),
    (U64Getter('GetHostMemPhysFreeMB'), 'HostMemPhysFree',
     'total amount of physical memory free on host', 'MB'),
    (U64Getter('GetHostMemPhysMB'), 'HostMemPhys',
     'total amount of memory available to the host OS kernel', 'MB'),
    (U64Getter('GetHostMemUsedMB'), 'HostMemUsed',
     'total amount of consumed memory on the host', 'MB'),
    (U64Getter('GetHostMemSharedMB'), 'HostMemShared',
     'total amount of COW (Copy-On-Write) memory on the host', 'MB'),
    (U64Getter('GetHostMemSwappedMB'), 'HostMemSwapped',
     'total amount of memory swapped out on the host', 'MB'),
    (U64Getter('GetHostCpuUsedMs'), 'HostCPUUsed',
     'total CPU time used by host.', 'ms'),
    (U64Getter('GetCpuUsedMs'), 'CPUUsed',
     'time during which the virtual machine has been using the CPU.', 'ms'),
    (U64Getter('GetMemTargetSizeMB'), 'MemTargetSize',
     'memory target Size', 'MB'),
    (U64Getter('GetCpuStolenMs'), 'CPUStolen',
     'time that the VM was runnable but not scheduled to run.', 'ms'),
    (U64Getter('GetElapsedMs'), 'TimeElapsed',
     'real time passed since the virtual machine started running on the current host system.', 'ms'),
    (U32Getter('GetHostNumCpuCores'), 'HostNumCPUCores',
     'number of physical CPU cores on the host machine.', ''),
    (U32Getter('GetMemUsedMB'), 'MemUsed',
     "estimated amount of physical host memory currently consumed for this virtual machine's physical memory.", 'MB'),
    (U32Getter('GetMemSharedSavedMB'), 'MemSharedSaved',
     'estimated amount of physical memory on the host saved from copy-on-write (COW) shared guest physical memory.', 'MB'),
    (U32Getter('GetMemSharedMB'), 'MemShared',
     'physical memory associated with this virtual machine that is copy-on-write (COW) shared on the host.', 'MB'),
    (U32Getter('GetMemSwappedMB'), 'MemSwapped',
     'memory associated with this virtual machine that has been swapped by the host system.', 'MB'),
    (U32Getter('GetMemBalloonedMB'), 'MemBallooned',
     'memory that has been reclaimed from this virtual machine via the VMware Memory Balloon mechanism.', 'MB'),
    (U32Getter('GetMemOverheadMB'), 'MemOverhead',
     'overhead memory associated with this virtual machine consumed on the host system.', 'MB'),
    (U32Getter('GetMemActiveMB'), 'MemActive',
     'estimated amount of memory the virtual machine is actively using.', 'MB'),
    (U32Getter('GetMemMappedMB'), 'MemMapped',
     'mapped memory size of this virtual machine.', 'MB'),
    (U32Getter('GetMemShares'), 'MemShares',
     'number of memory shares allocated to the virtual machine.', ''),
    (U32Getter('GetMemLimitMB'), 'MemLimit',
     'maximum amount of memory that is available to the virtual machine.', 'MB'),
    (U32Getter('GetMemReservationMB'), 'MemReservation',
     'minimum amount of memory that is available to the virtual machine.', 'MB'),
    (U32Getter('GetHostProcessorSpeed'), 'HostProcessorSpeed',
     'host processor speed.', 'MHz'),
    (U32Getter('GetCpuShares'), 'CPUShares',
     'number of CPU shares allocated to the virtual machine.', ''),
    (U32Getter('GetCpuLimitMHz'), 'CPULimit',
     'maximum processing power available to the virtual machine.', 'MHz'),
    (U32Getter('GetCpuReservationMHz'), 'CPUReservation',
     'minimum processing power available to the virtual machine.', 'MHz'),
]

""" ---------- metrics define end ---------- """


class FixedMetric(NamedTuple):
    name: str
    desc: str
    mtype: str

    def family(self, value=None):
        return _FAMILIES[self.mtype](self.name, self.desc, value=value)


ISGUEST = FixedMetric(
    NAMESPACE + 'isguest',
    '1 if running on a vmware guest with tools installed, 0 otherwise', GAUGE)
EVENTS = FixedMetric(
    NAMESPACE + 'events', 'events e.g. snapshot, vmotion, etc', COUNTER)
COLLECT_ERRORS = FixedMetric(
    NAMESPACE + 'collecterrors', 'errors harvesting metrics', COUNTER)


def build_metrics(table=None):
    """Turn a (getter, name, desc, unit) table into an immutable tuple of MetricSpec."""
    if table is None:
        table = METRIC_TABLE
    names = {ISGUEST.name, EVENTS.name, COLLECT_ERRORS.name}
    result = []
    for getter, name, desc, unit in table:
        if unit not in UNIT_HELPERS:
            raise ValueError(f'unknown unit <{unit}> for metric <{name}>')
        spec = UNIT_HELPERS[unit](getter, name, desc)
        if spec.prometheus_name in names:
            raise ValueError(f'duplicate name {spec.prometheus_name}')
        names.add(spec.prometheus_name)
        result.append(spec)
    return tuple(result)


if __name__ == '__main__':
    for m in build_metrics():
        print(f'{m.prometheus_name} {m.mtype} x{m.multiplier} {m.getter}')

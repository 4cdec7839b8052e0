"""
System Metrics Generator
Infrastructure metrics shaped as HEC metric events (one record per measurement).
"""
from datetime import datetime
from typing import Dict, List

from event_generator.base import EventGenerator
from event_generator.models import EventTemplate, EventType, FieldMap

GIB = 1024 ** 3


def _template(template_id: str, name: str, description: str) -> EventTemplate:
    return EventTemplate(
        id=template_id,
        name=name,
        category="metrics_system",
        event_id=template_id,
        format="json",
        description=description,
    )


class SystemMetricsGenerator(EventGenerator):
    """
    Generates host level metric batches.

    Each event carries a `metrics` list of measurements sharing the same host
    dimensions, plus the dimensions themselves at the top level.
    """

    event_type = EventType(
        id="metrics_system",
        name="System Metrics",
        category="metrics",
        description="Host infrastructure metrics: CPU, memory, disk, network, load and temperature",
        event_ids=["cpu", "memory", "disk_space", "disk_io", "network", "load", "temperature"],
    )
    templates = [
        _template("cpu", "CPU Usage", "CPU utilization metrics per core and total"),
        _template("memory", "Memory Usage", "Memory usage metrics (used, free, cached, buffers)"),
        _template("disk_space", "Disk Space", "Disk space utilization by mount point"),
        _template("disk_io", "Disk I/O", "Disk read/write throughput and IOPS"),
        _template("network", "Network", "Network interface throughput and errors"),
        _template("load", "System Load", "System load average and process counts"),
        _template("temperature", "Temperature", "Hardware temperature sensors (CPU, GPU, chassis)"),
    ]
    sourcetype = "metrics"

    def __init__(self, rng=None):
        super().__init__(rng)
        self.builders = {
            "cpu": self._cpu,
            "memory": self._memory,
            "disk_space": self._disk_space,
            "disk_io": self._disk_io,
            "network": self._network,
            "load": self._load,
            "temperature": self._temperature,
        }

    def _dimensions(self) -> Dict[str, str]:
        prefix = self.random_choice(["web", "app", "db", "cache", "api", "worker", "proxy", "monitor"])
        return {
            "host": f"{prefix}-{self.random_int(1, 20):02d}.prod.internal",
            "region": self.random_choice(["us-east-1", "us-west-2", "us-gov-east-1", "us-gov-west-1"]),
            "environment": self.random_choice(["production", "staging", "development"]),
        }

    def _metric(self, now: datetime, name: str, value: float, dimensions: Dict[str, str]) -> FieldMap:
        fields: FieldMap = {"metric_name": name, "_value": round(float(value), 2)}
        fields.update(dimensions)
        return {
            "time": int(now.timestamp()),
            "event": "metric",
            "source": "infrastructure_metrics",
            "host": dimensions["host"],
            "fields": fields,
        }

    def _batch(self, dimensions: Dict[str, str], metrics: List[FieldMap], **extra) -> FieldMap:
        fields: FieldMap = {"metrics": metrics}
        fields.update(dimensions)
        fields.update(extra)
        return fields

    # ---------- templates ----------

    def _cpu(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        num_cores = self.random_int(4, 32)
        metrics = []
        total = 0.0
        for core in range(num_cores):
            usage = float(self.random_int(5, 40))
            if self.random_int(0, 10) > 7:
                usage = float(self.random_int(60, 95))
            metrics.append(self._metric(now, "cpu.percent", usage, dict(dims, cpu=f"cpu{core}")))
            total += usage
        metrics.append(self._metric(now, "cpu.percent.total", total / num_cores, dims))

        user_pct = self.random_int(10, 60)
        sys_pct = self.random_int(5, 25)
        for name, value in (
            ("cpu.user", user_pct),
            ("cpu.system", sys_pct),
            ("cpu.idle", 100 - user_pct - sys_pct),
            ("cpu.iowait", self.random_int(0, 10)),
        ):
            metrics.append(self._metric(now, name, value, dims))
        return self._batch(dims, metrics, num_cores=num_cores)

    def _memory(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        total = self.random_choice([8, 16, 32, 64, 128, 256]) * GIB
        used_pct = self.random_int(30, 85)
        used = total * used_pct / 100
        cached = total * self.random_int(10, 30) / 100
        buffers = total * self.random_int(2, 8) / 100
        swap_total = total / 2
        swap_pct = self.random_int(0, 30)
        metrics = [
            self._metric(now, name, value, dims) for name, value in (
                ("memory.total", total),
                ("memory.used", used),
                ("memory.free", total - used),
                ("memory.cached", cached),
                ("memory.buffers", buffers),
                ("memory.percent", used_pct),
                ("memory.available", total - used + cached + buffers),
                ("swap.total", swap_total),
                ("swap.used", swap_total * swap_pct / 100),
                ("swap.percent", swap_pct),
            )
        ]
        return self._batch(dims, metrics)

    def _disk_space(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        metrics = []
        for mount, device in (("/", "sda1"), ("/var", "sda2"), ("/data", "sdb1")):
            disk_dims = dict(dims, mount=mount, device=device)
            total = self.random_choice([100, 250, 500, 1000, 2000]) * GIB
            used_pct = self.random_int(20, 95)
            used = total * used_pct / 100
            inodes_total = self.random_int(1000000, 60000000)
            inodes_pct = self.random_int(1, 60)
            for name, value in (
                ("disk.total", total),
                ("disk.used", used),
                ("disk.free", total - used),
                ("disk.percent", used_pct),
                ("disk.inodes.total", inodes_total),
                ("disk.inodes.used", inodes_total * inodes_pct / 100),
                ("disk.inodes.percent", inodes_pct),
            ):
                metrics.append(self._metric(now, name, value, disk_dims))
        return self._batch(dims, metrics)

    def _disk_io(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        metrics = []
        for device in ("sda", "sdb", "nvme0n1"):
            io_dims = dict(dims, device=device)
            for name, value in (
                ("diskio.read_bytes", self.random_int(1, 500) * 1024 * 1024),
                ("diskio.write_bytes", self.random_int(1, 300) * 1024 * 1024),
                ("diskio.read_iops", self.random_int(10, 20000)),
                ("diskio.write_iops", self.random_int(10, 15000)),
                ("diskio.queue_length", self.random_int(0, 320) / 10),
                ("diskio.utilization", self.random_int(1, 100)),
                ("diskio.read_latency_ms", self.random_int(1, 500) / 10),
                ("diskio.write_latency_ms", self.random_int(1, 800) / 10),
            ):
                metrics.append(self._metric(now, name, value, io_dims))
        return self._batch(dims, metrics)

    def _network(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        metrics = []
        for interface in ("eth0", "eth1"):
            net_dims = dict(dims, interface=interface)
            for name, value in (
                ("net.bytes_recv", self.random_int(1000, 125000000)),
                ("net.bytes_sent", self.random_int(1000, 125000000)),
                ("net.packets_recv", self.random_int(100, 100000)),
                ("net.packets_sent", self.random_int(100, 100000)),
                ("net.errors_recv", self.random_int(0, 10)),
                ("net.errors_sent", self.random_int(0, 10)),
                ("net.dropped_recv", self.random_int(0, 50)),
                ("net.dropped_sent", self.random_int(0, 50)),
            ):
                metrics.append(self._metric(now, name, value, net_dims))
        for name, value in (
            ("net.tcp.established", self.random_int(100, 5000)),
            ("net.tcp.time_wait", self.random_int(10, 500)),
            ("net.tcp.close_wait", self.random_int(0, 50)),
            ("net.tcp.listen", self.random_int(10, 100)),
        ):
            metrics.append(self._metric(now, name, value, dims))
        return self._batch(dims, metrics)

    def _load(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        num_cores = self.random_choice([2, 4, 8, 16, 32, 64])
        load1 = self.random_int(0, num_cores * 150) / 100
        metrics = [
            self._metric(now, name, value, dims) for name, value in (
                ("system.load1", load1),
                ("system.load5", load1 * self.random_int(70, 110) / 100),
                ("system.load15", load1 * self.random_int(60, 100) / 100),
                ("system.cpu_count", num_cores),
                ("system.processes.total", self.random_int(100, 500)),
                ("system.processes.running", self.random_int(1, 20)),
                ("system.processes.sleeping", self.random_int(80, 400)),
                ("system.processes.zombie", self.random_int(0, 3)),
                ("system.uptime_seconds", self.random_int(3600, 31536000)),
                ("system.context_switches", self.random_int(10000, 1000000)),
                ("system.interrupts", self.random_int(5000, 500000)),
            )
        ]
        return self._batch(dims, metrics, num_cores=num_cores)

    def _temperature(self, now: datetime) -> FieldMap:
        dims = self._dimensions()
        metrics = []
        for core in range(self.random_int(2, 8)):
            metrics.append(self._metric(
                now, "temperature.celsius", self.random_int(350, 850) / 10,
                dict(dims, sensor=f"core{core}", type="cpu"),
            ))
        for sensor, kind, low, high in (
            ("package", "cpu", 400, 900),
            ("gpu0", "gpu", 300, 850),
            ("chassis", "chassis", 200, 450),
            ("disk0", "disk", 250, 550),
        ):
            metrics.append(self._metric(
                now, "temperature.celsius", self.random_int(low, high) / 10,
                dict(dims, sensor=sensor, type=kind),
            ))
        for fan in range(self.random_int(2, 6)):
            metrics.append(self._metric(
                now, "fan.rpm", self.random_int(800, 4500), dict(dims, fan=f"fan{fan}"),
            ))
        return self._batch(dims, metrics)

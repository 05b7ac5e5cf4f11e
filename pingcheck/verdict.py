"""
Verdict and structured result record. Pure functions of final stats + config;
nothing here raises.
"""
import json
from dataclasses import asdict, dataclass
from typing import Any, Optional

from pingcheck.config import ProbeConfig
from pingcheck.stats import StatsSnapshot

CHECK_NAME = "ping"
RESULT_TYPE = "site"


@dataclass(frozen=True)
class ProbeData:
    latency: int  # average RTT, whole milliseconds (truncated)
    packetloss: float
    packets_sent: int
    packets_received: int


@dataclass(frozen=True)
class ProbeResult:
    """Exactly one of error / data is set."""

    checkname: str
    servername: str
    resulttype: str
    success: bool
    error: Optional[str] = None
    data: Optional[ProbeData] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2)
        return json.dumps(self.to_dict(), separators=(",", ":"))


def is_success(loss_percent: float, avg_latency_ms: int, config: ProbeConfig) -> bool:
    # avg 0 means no reply was ever measured; never a pass
    return (
        loss_percent <= config.max_loss
        and avg_latency_ms <= config.max_latency_ms
        and avg_latency_ms != 0
    )


def build_result(snapshot: StatsSnapshot, config: ProbeConfig) -> ProbeResult:
    loss = snapshot.loss_percent()
    latency = snapshot.avg_latency_ms()
    return ProbeResult(
        checkname=CHECK_NAME,
        servername=config.display_name,
        resulttype=RESULT_TYPE,
        success=is_success(loss, latency, config),
        data=ProbeData(
            latency=latency,
            packetloss=loss,
            packets_sent=snapshot.sent,
            packets_received=snapshot.received,
        ),
    )


def failure_result(config: ProbeConfig, message: str) -> ProbeResult:
    return ProbeResult(
        checkname=CHECK_NAME,
        servername=config.display_name,
        resulttype=RESULT_TYPE,
        success=False,
        error=message,
    )

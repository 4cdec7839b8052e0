"""
Builtin Generators
Event generator plugins shipped with the service, in registration order.
"""
from event_generator.generators.suricata import SuricataGenerator
from event_generator.generators.aws_guardduty import AWSGuardDutyGenerator
from event_generator.generators.windows_security import WindowsSecurityGenerator
from event_generator.generators.metrics_system import SystemMetricsGenerator

BUILTIN_GENERATORS = [
    SuricataGenerator,
    AWSGuardDutyGenerator,
    WindowsSecurityGenerator,
    SystemMetricsGenerator,
]

__all__ = [
    'BUILTIN_GENERATORS',
    'SuricataGenerator',
    'AWSGuardDutyGenerator',
    'WindowsSecurityGenerator',
    'SystemMetricsGenerator',
]

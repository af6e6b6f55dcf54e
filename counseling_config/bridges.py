"""
Bridges from configuration into kernel value objects.

The kernel never imports ``counseling_config``; these functions are the
only place the two meet.
"""

from __future__ import annotations

from counseling_config.schema import CounselingConfiguration
from counseling_kernel.domain.notification import OfficeDirectory
from counseling_kernel.domain.time_rules import SchedulingPolicy, parse_clock_time
from counseling_kernel.services.provisioning import ProvisioningRunner


def scheduling_policy_from_config(config: CounselingConfiguration) -> SchedulingPolicy:
    sched = config.scheduling
    return SchedulingPolicy(
        business_start=parse_clock_time(sched.business_start),
        business_end=parse_clock_time(sched.business_end),
        lunch_block=parse_clock_time(sched.lunch_block),
        session_minutes=sched.session_minutes,
        notice_minutes=sched.notice_minutes,
    )


def office_directory_from_config(config: CounselingConfiguration) -> OfficeDirectory:
    offices = config.offices
    return OfficeDirectory(
        locations=dict(offices.locations),
        default_campus=offices.default_campus,
        default_office=offices.default_office,
        signature=config.mail.signature,
    )


def provisioning_runner_from_config(config: CounselingConfiguration) -> ProvisioningRunner:
    return ProvisioningRunner(max_workers=config.provisioning.max_workers)

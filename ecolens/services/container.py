"""Process-lifetime services, built once at startup and injected into handlers."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict

from ecolens.core.config import Settings
from ecolens.core.email import Mailer, build_mail_config
from ecolens.services.authority_resolver import AuthorityResolver, build_authority_resolver
from ecolens.services.classifier import ViolationClassifier
from ecolens.services.geocoding import NominatimGeocoder
from ecolens.services.local_laws import LocalLawAdvisor
from ecolens.services.model_adapter import build_model_invoker
from ecolens.services.report_assembler import ReportAssembler


class ServiceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class PipelineServices:
    classifier: ViolationClassifier
    resolver: AuthorityResolver
    report_assembler: ReportAssembler
    law_advisor: LocalLawAdvisor
    geocoder: NominatimGeocoder
    mailer: Mailer
    status: Dict[str, ServiceStatus] = field(default_factory=dict)


def build_services(settings: Settings) -> PipelineServices:
    invoker = build_model_invoker(settings)
    resolver = build_authority_resolver(settings)
    mailer = Mailer(build_mail_config(settings), settings.AUTHORITY_ALERT_RECIPIENT)

    return PipelineServices(
        classifier=ViolationClassifier(invoker),
        resolver=resolver,
        report_assembler=ReportAssembler(resolver, mailer, Path(settings.MEDIA_ROOT)),
        law_advisor=LocalLawAdvisor(invoker),
        geocoder=NominatimGeocoder(
            url=settings.NOMINATIM_URL,
            user_agent=settings.GEOCODER_USER_AGENT,
            timeout=settings.GEOCODER_TIMEOUT_SECONDS,
        ),
        mailer=mailer,
        status={
            "database": ServiceStatus.OFFLINE,
            "models": ServiceStatus.ONLINE if settings.GEMINI_API_KEY else ServiceStatus.OFFLINE,
            "poi_search": ServiceStatus.ONLINE if settings.TOMTOM_API_KEY else ServiceStatus.OFFLINE,
            "mail": ServiceStatus.OFFLINE if settings.MAIL_SUPPRESS_SEND else ServiceStatus.ONLINE,
        },
    )

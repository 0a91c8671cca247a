"""Domain services containing topology policy.

These services hold the static tables of the core network: which component
roles may talk to each other, what the interface between them is called, and
which services each role exposes. They are stateless and never raise.
"""

from pydantic import BaseModel, ConfigDict, Field

from .enums import ComponentType, RegistrationStatus
from .models import ServiceDescriptor
from .value_objects import NetworkAddress, subnet_prefix

T = ComponentType

DEFAULT_INTERFACE_LABEL = "SBI"

# Stored asymmetrically (client/server roles); looked up in both directions.
_COMPATIBILITY: dict[ComponentType, frozenset[ComponentType]] = {
    T.NRF: frozenset({T.AMF, T.SMF, T.UPF, T.AUSF, T.UDM, T.PCF, T.NSSF, T.UDR}),
    T.AMF: frozenset({T.NRF, T.SMF, T.AUSF, T.UDM, T.PCF, T.NSSF, T.GNB, T.UE}),
    T.SMF: frozenset({T.NRF, T.AMF, T.UPF, T.PCF, T.UDM, T.UDR}),
    T.UPF: frozenset({T.NRF, T.SMF, T.GNB}),
    T.AUSF: frozenset({T.NRF, T.AMF, T.UDM}),
    T.UDM: frozenset({T.NRF, T.AMF, T.SMF, T.AUSF, T.PCF, T.UDR}),
    T.PCF: frozenset({T.NRF, T.AMF, T.SMF, T.UDM}),
    T.NSSF: frozenset({T.NRF, T.AMF}),
    T.UDR: frozenset({T.NRF, T.SMF, T.UDM, T.MYSQL}),
    T.GNB: frozenset({T.AMF, T.UPF, T.UE}),
    T.UE: frozenset({T.GNB, T.AMF}),
    T.MYSQL: frozenset({T.UDR}),
    T.EXT_DN: frozenset({T.UPF}),
}

_INTERFACE_LABELS: dict[tuple[ComponentType, ComponentType], str] = {
    (T.AMF, T.NRF): "Nnrf_NFManagement",
    (T.SMF, T.NRF): "Nnrf_NFDiscovery",
    (T.UPF, T.NRF): "Nnrf_NFManagement",
    (T.AUSF, T.NRF): "Nnrf_NFManagement",
    (T.UDM, T.NRF): "Nnrf_NFManagement",
    (T.PCF, T.NRF): "Nnrf_NFManagement",
    (T.NSSF, T.NRF): "Nnrf_NFManagement",
    (T.UDR, T.NRF): "Nnrf_NFManagement",
    (T.AMF, T.SMF): "Namf_Communication",
    (T.AMF, T.AUSF): "Nausf_UEAuthentication",
    (T.AMF, T.UDM): "Nudm_UECM",
    (T.AMF, T.PCF): "Npcf_AMPolicyControl",
    (T.AMF, T.NSSF): "Nnssf_NSSelection",
    (T.AMF, T.UE): "N1",
    (T.SMF, T.UPF): "N4",
    (T.SMF, T.PCF): "Npcf_SMPolicyControl",
    (T.SMF, T.UDM): "Nudm_SDM",
    (T.SMF, T.UDR): "Nudr_EventExposure",
    (T.AUSF, T.UDM): "Nudm_Authentication",
    (T.PCF, T.UDM): "Nudm_PolicyControl",
    (T.GNB, T.AMF): "N2",
    (T.GNB, T.UPF): "N3",
    (T.GNB, T.UE): "Radio",
    (T.UDM, T.UDR): "Nudr_DataRepository",
    (T.UDR, T.MYSQL): "SQL/REST API",
    (T.UPF, T.EXT_DN): "N6",
}


class ConnectivityPolicy:
    """Domain service deciding which component pairs may be linked.

    Unknown types are inadmissible and get the default interface label.
    """

    @staticmethod
    def is_admissible(type_a: ComponentType | str, type_b: ComponentType | str) -> bool:
        """Check compatibility in either direction of the table.

        Args:
            type_a: Role of the first component
            type_b: Role of the second component

        Returns:
            True if either role lists the other as a peer
        """
        a = ComponentType.parse(type_a)
        b = ComponentType.parse(type_b)
        if a is None or b is None:
            return False
        return b in _COMPATIBILITY.get(a, frozenset()) or a in _COMPATIBILITY.get(b, frozenset())

    @staticmethod
    def interface_label(type_a: ComponentType | str, type_b: ComponentType | str) -> str:
        """Resolve the interface name for a pair, trying both orderings.

        Args:
            type_a: Role of the first component
            type_b: Role of the second component

        Returns:
            The specific label, or "SBI" when the pair has none
        """
        a = ComponentType.parse(type_a)
        b = ComponentType.parse(type_b)
        if a is None or b is None:
            return DEFAULT_INTERFACE_LABEL
        return (
            _INTERFACE_LABELS.get((a, b))
            or _INTERFACE_LABELS.get((b, a))
            or DEFAULT_INTERFACE_LABEL
        )

    @staticmethod
    def subnet_of(address: str) -> str:
        """Return the /24 prefix of an address."""
        return subnet_prefix(address)

    @staticmethod
    def same_subnet(address_a: str, address_b: str) -> bool:
        """Check whether two addresses share the /24 prefix."""
        return subnet_prefix(address_a) == subnet_prefix(address_b)

    @staticmethod
    def peers_of(component_type: ComponentType | str) -> frozenset[ComponentType]:
        """All roles admissible with the given one."""
        parsed = ComponentType.parse(component_type)
        if parsed is None:
            return frozenset()
        forward = _COMPATIBILITY.get(parsed, frozenset())
        reverse = {other for other, peers in _COMPATIBILITY.items() if parsed in peers}
        return frozenset(forward | reverse)


class ServiceTemplate(BaseModel):
    """Static description of a service a role exposes."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    api_version: str = "v1"
    api_full_version: str = "1.0.0"
    allowed_peer_types: tuple[ComponentType, ...] = Field(default_factory=tuple)


def _tpl(name: str, *peers: ComponentType, version: str = "v1") -> ServiceTemplate:
    return ServiceTemplate(
        service_name=name,
        api_version=version,
        api_full_version=f"{version[1:]}.0.0",
        allowed_peer_types=peers,
    )


_SERVICE_TEMPLATES: dict[ComponentType, tuple[ServiceTemplate, ...]] = {
    T.NRF: (_tpl("nnrf-nfm"), _tpl("nnrf-disc")),
    T.AMF: (_tpl("namf-comm", T.SMF),),
    T.SMF: (_tpl("nsmf-pdusession", T.AMF),),
    T.UPF: (_tpl("nupf-pfcp", T.SMF),),
    T.AUSF: (_tpl("nausf-auth", T.AMF),),
    T.UDM: (
        _tpl("nudm-ueau", T.AUSF),
        _tpl("nudm-uecm", T.AMF),
        _tpl("nudm-sdm", T.AMF, T.SMF, version="v2"),
    ),
    T.UDR: (_tpl("nudr-dr", T.PCF, T.UDM),),
    T.PCF: (
        _tpl("npcf-am-policy-control", T.AMF, T.NEF),
        _tpl("npcf-smpolicycontrol", T.SMF, T.NEF, T.AF),
    ),
    T.NSSF: (_tpl("nnssf-nsselection", T.AMF, version="v2"),),
}

_ALLOWED_PEER_TYPES: dict[ComponentType, tuple[ComponentType, ...]] = {
    T.AMF: (T.SMF,),
    T.SMF: (T.AMF,),
    T.AUSF: (T.AMF,),
    T.UDM: (T.AMF, T.SMF, T.AUSF),
    T.UDR: (T.PCF, T.UDM),
    T.PCF: (T.AMF, T.SMF, T.NEF, T.AF),
    T.NSSF: (T.AMF,),
}


class ServiceCatalog:
    """Domain service mapping component roles to the services they expose."""

    @staticmethod
    def templates_for(component_type: ComponentType | str | None) -> tuple[ServiceTemplate, ...]:
        """Service templates for a role; empty for roles without services."""
        parsed = ComponentType.parse(component_type)
        if parsed is None:
            return ()
        return _SERVICE_TEMPLATES.get(parsed, ())

    @staticmethod
    def allowed_peer_types(component_type: ComponentType | str | None) -> list[ComponentType]:
        """Default registry-side allowed peer types for a role."""
        parsed = ComponentType.parse(component_type)
        if parsed is None:
            return []
        return list(_ALLOWED_PEER_TYPES.get(parsed, ()))

    @classmethod
    def build_services(
        cls,
        instance_id: str,
        component_type: ComponentType | str | None,
        network: NetworkAddress | None,
        capacity: int = 100,
        load: int = 0,
        priority: int = 0,
    ) -> list[ServiceDescriptor]:
        """Derive the service descriptors an instance offers.

        Args:
            instance_id: Owning instance; service ids are derived from it
            component_type: Role of the instance
            network: Where the instance listens, if known
            capacity: Capacity advertised on every service
            load: Load advertised on every service
            priority: Priority advertised on every service

        Returns:
            One descriptor per template of the role, in table order
        """
        endpoint = network.endpoint if network else ""
        scheme = network.scheme if network else "http"
        return [
            ServiceDescriptor(
                service_instance_id=f"{instance_id}-{template.service_name}",
                service_name=template.service_name,
                api_version=template.api_version,
                api_full_version=template.api_full_version,
                scheme=scheme,
                endpoint=endpoint,
                allowed_peer_types=list(template.allowed_peer_types),
                capacity=capacity,
                load=load,
                priority=priority,
                status=RegistrationStatus.REGISTERED,
            )
            for template in cls.templates_for(component_type)
        ]

from __future__ import annotations

from dataclasses import dataclass

from .config import AppConfig
from .db import Db
from .pdf import PdfRenderer
from .repositories.client_repo import ClientRepository
from .repositories.consultant_repo import ConsultantRepository
from .repositories.modality_repo import ModalityRepository
from .repositories.order_repo import OrderRepository
from .repositories.relation_repo import RelationRepository
from .repositories.service_repo import ServiceRepository
from .services.catalog_service import ConsultantService, ModalityService, ServiceTypeService
from .services.client_service import ClientService
from .services.document_lookup import DocumentLookup
from .services.order_service import OrderService
from .services.relation_service import RelationService


@dataclass
class AppContext:
    """Everything the entry points need, wired once per process."""

    db: Db
    renderer: PdfRenderer
    lookup: DocumentLookup
    service_repo: ServiceRepository
    clients: ClientService
    consultants: ConsultantService
    services: ServiceTypeService
    modalities: ModalityService
    orders: OrderService
    relation: RelationService


def build_context(cfg: AppConfig, db: Db | None = None) -> AppContext:
    client_repo = ClientRepository()
    order_repo = OrderRepository()
    relation_repo = RelationRepository()
    service_repo = ServiceRepository()
    return AppContext(
        db=db or Db(cfg.db),
        renderer=PdfRenderer(cfg.pdf),
        lookup=DocumentLookup(cfg.lookup),
        service_repo=service_repo,
        clients=ClientService(client_repo=client_repo),
        consultants=ConsultantService(consultant_repo=ConsultantRepository()),
        services=ServiceTypeService(service_repo=service_repo),
        modalities=ModalityService(modality_repo=ModalityRepository()),
        orders=OrderService(order_repo=order_repo, relation_repo=relation_repo),
        relation=RelationService(relation_repo=relation_repo, client_repo=client_repo),
    )

from datetime import date, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import (
    Announcement,
    Building,
    CommonExpense,
    CommonSpace,
    Message,
    MessageResponse,
    SpaceReservation,
    User,
    Visitor,
)
from .statuses import ExpenseStatus, MessageStatus, ReservationStatus, UserRole, VisitorStatus

logger = structlog.get_logger("condohub.seed")

ADMIN_EMAIL = "admin@procomunidad.cl"


def _dt(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def seed_demo_data(db: Session) -> bool:
    """Load the demo building. Returns False when data is already present."""
    if db.execute(select(func.count(Building.id))).scalar_one():
        return False

    building = Building(
        name="Edificio Los Robles",
        address="Av. Providencia 1234, Providencia, Santiago",
        total_apartments=48,
        admin_company="Administradora ProComunidad",
        created_at=_dt("2024-01-01T00:00:00"),
    )
    db.add(building)
    db.flush()

    admin = User(
        building_id=building.id,
        email=ADMIN_EMAIL,
        name="María González",
        apartment="Administración",
        phone="+56912345678",
        role=UserRole.ADMIN,
        created_at=_dt("2024-01-01T00:00:00"),
    )
    juan = User(
        building_id=building.id,
        email="juan.perez@email.com",
        name="Juan Pérez",
        apartment="301",
        phone="+56987654321",
        role=UserRole.RESIDENT,
        created_at=_dt("2024-01-15T00:00:00"),
    )
    ana = User(
        building_id=building.id,
        email="ana.silva@email.com",
        name="Ana Silva",
        apartment="205",
        phone="+56976543210",
        role=UserRole.RESIDENT,
        created_at=_dt("2024-01-20T00:00:00"),
    )
    db.add_all([admin, juan, ana])
    db.flush()

    db.add_all(
        [
            CommonExpense(
                user_id=juan.id,
                building_id=building.id,
                month="Enero",
                year=2025,
                amount=85000,
                description="Gastos comunes - Enero 2025",
                status=ExpenseStatus.PENDING,
                due_date=date(2025, 1, 15),
                created_at=_dt("2025-01-01T00:00:00"),
            ),
            CommonExpense(
                user_id=ana.id,
                building_id=building.id,
                month="Enero",
                year=2025,
                amount=85000,
                description="Gastos comunes - Enero 2025",
                status=ExpenseStatus.PAID,
                due_date=date(2025, 1, 15),
                paid_date=_dt("2025-01-10T00:00:00"),
                payment_method="transfer",
                created_at=_dt("2025-01-01T00:00:00"),
            ),
        ]
    )

    salon = CommonSpace(
        building_id=building.id,
        name="Salón de Eventos",
        description="Amplio salón para celebraciones y reuniones",
        capacity=50,
        hourly_rate=25000,
        available_hours=["09:00", "10:00", "11:00", "14:00", "15:00", "16:00", "17:00", "18:00", "19:00", "20:00"],
        amenities=["Cocina equipada", "Sistema de audio", "Mesas y sillas", "Aire acondicionado"],
        is_active=True,
    )
    quincho = CommonSpace(
        building_id=building.id,
        name="Quincho",
        description="Espacio al aire libre con parrilla",
        capacity=20,
        hourly_rate=15000,
        available_hours=["10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00", "18:00"],
        amenities=["Parrilla", "Mesas de picnic", "Lavaplatos", "Refrigerador"],
        is_active=True,
    )
    db.add_all([salon, quincho])
    db.flush()

    db.add_all(
        [
            SpaceReservation(
                user_id=juan.id,
                space_id=salon.id,
                reservation_date=date(2025, 1, 20),
                start_time="15:00",
                end_time="18:00",
                status=ReservationStatus.CONFIRMED,
                notes="Cumpleaños familiar",
                created_at=_dt("2025-01-10T10:00:00"),
            ),
            SpaceReservation(
                user_id=juan.id,
                space_id=quincho.id,
                reservation_date=date(2025, 1, 25),
                start_time="12:00",
                end_time="16:00",
                status=ReservationStatus.CONFIRMED,
                notes="Asado con amigos",
                created_at=_dt("2025-01-12T14:30:00"),
            ),
        ]
    )

    db.add_all(
        [
            Visitor(
                user_id=juan.id,
                name="Carlos Mendoza",
                document_id="12.345.678-9",
                phone="+56 9 8765 4321",
                visit_date=date(2025, 1, 15),
                visit_time="14:30",
                status=VisitorStatus.APPROVED,
                notes="Técnico de reparaciones",
                created_at=_dt("2025-01-14T10:00:00"),
            ),
            Visitor(
                user_id=juan.id,
                name="María Fernández",
                document_id="98.765.432-1",
                phone="+56 9 1234 5678",
                visit_date=date(2025, 1, 18),
                visit_time="16:00",
                status=VisitorStatus.COMPLETED,
                notes="Visita familiar",
                created_at=_dt("2025-01-17T09:30:00"),
            ),
            Visitor(
                user_id=juan.id,
                name="Roberto Silva",
                document_id="11.222.333-4",
                phone="+56 9 9876 5432",
                visit_date=date(2025, 1, 22),
                visit_time="10:00",
                status=VisitorStatus.APPROVED,
                notes="Delivery de compras",
                created_at=_dt("2025-01-21T08:15:00"),
            ),
        ]
    )

    db.add_all(
        [
            Announcement(
                building_id=building.id,
                title="Mantención de ascensores programada",
                content=(
                    "Se realizará mantención preventiva de los ascensores el día sábado 15 de enero "
                    "de 9:00 a 13:00 hrs. Durante este período, los ascensores no estarán disponibles."
                ),
                type="maintenance",
                priority="high",
                author_id=admin.id,
                is_pinned=True,
                created_at=_dt("2025-01-08T10:00:00"),
                updated_at=_dt("2025-01-08T10:00:00"),
            ),
            Announcement(
                building_id=building.id,
                title="Nueva política de reservas",
                content=(
                    "A partir del 1 de febrero, las reservas de espacios comunes deberán realizarse "
                    "con al menos 48 horas de anticipación."
                ),
                type="general",
                priority="medium",
                author_id=admin.id,
                is_pinned=False,
                created_at=_dt("2025-01-05T14:30:00"),
                updated_at=_dt("2025-01-05T14:30:00"),
            ),
        ]
    )

    elevator = Message(
        sender_id=juan.id,
        sender_name=juan.name,
        sender_type=UserRole.RESIDENT,
        subject="Problema con ascensor",
        content="El ascensor del lado derecho ha estado haciendo ruidos extraños y se detiene bruscamente.",
        category="maintenance",
        status=MessageStatus.IN_PROGRESS,
        created_at=_dt("2025-01-15T10:30:00"),
    )
    garden = Message(
        sender_id=ana.id,
        sender_name=ana.name,
        sender_type=UserRole.RESIDENT,
        subject="Sugerencia para área común",
        content="Sería bueno instalar más bancos en el jardín para que los adultos mayores puedan descansar.",
        category="suggestion",
        status=MessageStatus.OPEN,
        created_at=_dt("2025-01-14T16:45:00"),
    )
    db.add_all([elevator, garden])
    db.flush()
    db.add(
        MessageResponse(
            message_id=elevator.id,
            sender_id=admin.id,
            sender_name="Admin Edificio",
            sender_type=UserRole.ADMIN,
            content="Hemos contactado al técnico especialista. Revisión programada para mañana.",
            created_at=_dt("2025-01-15T14:20:00"),
        )
    )

    db.commit()
    logger.info("demo_data_seeded", building=building.name)
    return True

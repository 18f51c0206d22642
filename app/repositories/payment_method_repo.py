# app/repositories/payment_method_repo.py
import uuid

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.payment_method import PaymentMethod


class PaymentMethodRepository:

    def get_by_id(self, session: Session, method_id: uuid.UUID) -> PaymentMethod | None:
        return session.get(PaymentMethod, method_id)

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        method_type: str | None = None,
    ) -> list[PaymentMethod]:
        stmt = select(PaymentMethod).where(PaymentMethod.user_id == user_id)
        if method_type:
            stmt = stmt.where(PaymentMethod.type == method_type)
        stmt = stmt.order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at.desc())
        return list(session.exec(stmt).all())

    def count_for_user(self, session: Session, user_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(PaymentMethod).where(
            PaymentMethod.user_id == user_id
        )
        return int(session.exec(stmt).one() or 0)

    def unset_defaults(
        self,
        session: Session,
        user_id: uuid.UUID,
        except_id: uuid.UUID | None = None,
    ) -> None:
        """Does not commit."""
        stmt = update(PaymentMethod).where(PaymentMethod.user_id == user_id)
        if except_id is not None:
            stmt = stmt.where(PaymentMethod.id != except_id)
        session.exec(stmt.values(is_default=False))  # type: ignore[call-overload]

    def save(self, session: Session, method: PaymentMethod) -> PaymentMethod:
        session.add(method)
        session.commit()
        session.refresh(method)
        return method

    def delete(self, session: Session, method: PaymentMethod) -> None:
        session.delete(method)
        session.commit()

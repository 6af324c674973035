from sqlalchemy import Column, DateTime, Enum, func


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


def value_enum(enum_cls) -> Enum:
    """Enum column type that stores member values ("bid_lock"), not names."""
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members])

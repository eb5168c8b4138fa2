from sqlmodel import SQLModel, Field


class Counter(SQLModel, table=True):
    """Named monotonic sequence, advanced only by an atomic UPDATE."""

    name: str = Field(primary_key=True)
    value: int = Field(default=0)

"""
SQLAlchemy 2.0 ORM models for the locally replicated match history.
Read-only from Ladderwatch's point of view; ingestion owns the schema.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class PlayerORM(Base):
    __tablename__ = "players"

    puuid: Mapped[str] = mapped_column(String(100), primary_key=True)
    game_name: Mapped[Optional[str]] = mapped_column(Text)
    tag_line: Mapped[Optional[str]] = mapped_column(Text)


class MatchORM(Base):
    __tablename__ = "matches"

    match_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    queue_id: Mapped[int] = mapped_column(Integer, nullable=False)
    game_end_ts: Mapped[int] = mapped_column(BigInteger, nullable=False)
    game_duration_s: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    participants: Mapped[list["MatchParticipantORM"]] = relationship(back_populates="match")


class MatchParticipantORM(Base):
    __tablename__ = "match_participants"

    match_id: Mapped[str] = mapped_column(String(40), ForeignKey("matches.match_id"), primary_key=True)
    puuid: Mapped[str] = mapped_column(String(100), primary_key=True)
    champion_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    end_type: Mapped[Optional[str]] = mapped_column(String(20))

    match: Mapped["MatchORM"] = relationship(back_populates="participants")


class PlayerRankSnapshotORM(Base):
    __tablename__ = "player_rank_snapshot"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    puuid: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    queue_type: Mapped[str] = mapped_column(String(30), nullable=False)
    tier: Mapped[Optional[str]] = mapped_column(String(20))
    rank: Mapped[Optional[str]] = mapped_column(String(5))
    league_points: Mapped[Optional[int]] = mapped_column(Integer)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

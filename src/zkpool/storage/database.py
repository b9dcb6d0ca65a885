"""SQLAlchemy event store for off-chain indexing of pool events.

Deposit events carry the inserted commitment and its full tree path, so an
observer that records them can rebuild the tree and hand a prover the
sibling path for any leaf without access to pool internals.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from zkpool.core.merkle_tree import MerkleAccumulator, MerkleProof, build_merkle_proof
from zkpool.crypto.hasher import Hasher
from zkpool.exceptions import SerializationError, StorageError
from zkpool.models.schemas import DepositEvent, WithdrawalEvent
from zkpool.utils.encoding import field_to_hex, hex_to_field

logger = logging.getLogger(__name__)

Base = declarative_base()


class DepositRecord(Base):
    """Recorded deposit event."""
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True)
    leaf_index = Column(Integer, unique=True, nullable=False, index=True)
    commitment = Column(String(66), unique=True, nullable=False, index=True)
    root = Column(String(66), nullable=False, index=True)
    tree_path = Column(Text, nullable=False)  # JSON list of hex nodes
    hash_directions = Column(Text, nullable=False)  # JSON list of bits
    timestamp = Column(DateTime, default=datetime.now, index=True)

    def path(self) -> List[int]:
        return [hex_to_field(node) for node in json.loads(self.tree_path)]

    def directions(self) -> List[int]:
        return json.loads(self.hash_directions)

    def __repr__(self) -> str:
        return f"<DepositRecord(index={self.leaf_index} {self.commitment[:10]}...)>"


class WithdrawalRecord(Base):
    """Recorded withdrawal event."""
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True)
    nullifier_hash = Column(String(66), unique=True, nullable=False, index=True)
    root = Column(String(66), nullable=False)
    claimant = Column(String(42), nullable=True, index=True)
    amount = Column(String(80), nullable=False)  # decimal string, may exceed 64 bits
    timestamp = Column(DateTime, default=datetime.now, index=True)

    def __repr__(self) -> str:
        return f"<WithdrawalRecord({self.nullifier_hash[:10]}... to={self.claimant})>"


class EventStore:
    """Persists pool events and rebuilds tree data from them."""

    def __init__(self, database_url: str = "sqlite:///zkpool.db"):
        """
        Initialize event store.

        Args:
            database_url: SQLAlchemy database URL
                         Default: SQLite in current directory
        """
        self.database_url = database_url
        self.engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
        )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create all tables in database."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all tables (for testing)."""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def handle_event(self, event) -> None:
        """Pool listener: persist any pool event."""
        if isinstance(event, DepositEvent):
            self.record_deposit(event)
        elif isinstance(event, WithdrawalEvent):
            self.record_withdrawal(event)
        else:
            raise SerializationError(f"Unsupported event type: {type(event).__name__}")

    def record_deposit(self, event: DepositEvent) -> DepositRecord:
        """
        Store a deposit event.

        Raises:
            StorageError: If the leaf index or commitment is already stored
        """
        record = DepositRecord(
            leaf_index=event.leaf_index,
            commitment=field_to_hex(event.commitment),
            root=field_to_hex(event.root),
            tree_path=json.dumps([field_to_hex(node) for node in event.tree_path]),
            hash_directions=json.dumps(list(event.hash_directions)),
            timestamp=event.timestamp,
        )
        with self.get_session() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise StorageError(f"Deposit {event.leaf_index} already recorded: {e.orig}")
        logger.debug(f"Recorded deposit {event.leaf_index}")
        return record

    def record_withdrawal(self, event: WithdrawalEvent) -> WithdrawalRecord:
        """
        Store a withdrawal event.

        Raises:
            StorageError: If the nullifier hash is already stored
        """
        record = WithdrawalRecord(
            nullifier_hash=field_to_hex(event.nullifier_hash),
            root=field_to_hex(event.root),
            claimant=event.claimant,
            amount=str(event.amount),
            timestamp=event.timestamp,
        )
        with self.get_session() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise StorageError(f"Nullifier already recorded: {e.orig}")
        logger.debug(f"Recorded withdrawal {record.nullifier_hash[:18]}...")
        return record

    def get_deposit(self, leaf_index: int) -> Optional[DepositRecord]:
        with self.get_session() as session:
            return session.query(DepositRecord).filter_by(leaf_index=leaf_index).first()

    def get_deposit_by_commitment(self, commitment: int) -> Optional[DepositRecord]:
        with self.get_session() as session:
            return session.query(DepositRecord).filter_by(commitment=field_to_hex(commitment)).first()

    def is_spent(self, nullifier_hash: int) -> bool:
        with self.get_session() as session:
            found = session.query(WithdrawalRecord).filter_by(nullifier_hash=field_to_hex(nullifier_hash)).first()
            return found is not None

    def deposit_count(self) -> int:
        with self.get_session() as session:
            return session.query(DepositRecord).count()

    def withdrawal_count(self) -> int:
        with self.get_session() as session:
            return session.query(WithdrawalRecord).count()

    def commitments(self) -> List[int]:
        """
        All recorded commitments in leaf order.

        Raises:
            StorageError: If recorded leaf indices have gaps
        """
        with self.get_session() as session:
            rows = session.query(DepositRecord).order_by(DepositRecord.leaf_index).all()
        for expected, row in enumerate(rows):
            if row.leaf_index != expected:
                raise StorageError(f"Missing deposit at leaf index {expected}")
        return [hex_to_field(row.commitment) for row in rows]

    def rebuild_accumulator(
        self, levels: int, hasher: Hasher, default_nodes: Optional[Sequence[int]] = None
    ) -> MerkleAccumulator:
        """
        Replay recorded deposits into a fresh accumulator.

        Raises:
            StorageError: If a replayed root differs from the recorded one
        """
        tree = MerkleAccumulator(levels, hasher, default_nodes)
        with self.get_session() as session:
            rows = session.query(DepositRecord).order_by(DepositRecord.leaf_index).all()
        for row in rows:
            result = tree.insert(hex_to_field(row.commitment))
            if result.leaf_index != row.leaf_index or field_to_hex(result.root) != row.root:
                raise StorageError(f"Replay diverged at leaf {row.leaf_index}")
        logger.info(f"Rebuilt tree from {len(rows)} deposits")
        return tree

    def merkle_proof(self, leaf_index: int, levels: int, hasher: Hasher, default_nodes: Sequence[int]) -> MerkleProof:
        """Build the sibling path a prover needs for ``leaf_index``."""
        return build_merkle_proof(self.commitments(), leaf_index, levels, hasher, default_nodes)

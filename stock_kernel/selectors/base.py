"""
Module: stock_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the read side of the stock kernel: they turn rows into
    immutable snapshots that the pure report builders consume.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit() or flush().
    - DTO return convention: selectors return tuples of frozen dataclasses,
      never ORM instances, so report code cannot mutate its inputs.
    - Session ownership: the caller owns the session and its transaction
      scope; every query in one report runs over the same snapshot.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return immutable DTO snapshots.
    """

    def __init__(self, session: Session):
        self.session = session

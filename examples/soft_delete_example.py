#!/usr/bin/env python3
"""
Soft Delete Example - SoftDelete Toolkit

Demonstrates the soft delete lifecycle on a small catalogue:
- Hiding deleted rows from ordinary queries
- Cascading deletes to dependents
- Cancelling deletes from a listener
- Restoring and purging
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from softdelete_toolkit.soft_delete import (
    BEFORE_DELETE,
    Outcome,
    QueryScopeFilter,
    SoftDeleteMixin,
    SoftDeleteService,
    with_deleted,
)

Base = declarative_base()


class Supplier(Base, SoftDeleteMixin):
    """Supplier whose products are deleted along with it."""

    __tablename__ = "suppliers"
    __allow_unmapped__ = True
    __soft_delete_cascade__ = ["products"]

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    products = relationship("Product", back_populates="supplier")


class Product(Base, SoftDeleteMixin):
    """Product record with soft delete capability."""

    __tablename__ = "products"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"))
    sku = Column(String(20), nullable=False)
    supplier = relationship("Supplier", back_populates="products")


def main():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)

    # Every session from this factory hides soft-deleted rows
    QueryScopeFilter().install(SessionLocal)

    session = SessionLocal()
    acme = Supplier(id=1, name="ACME", products=[Product(id=1, sku="A-100")])
    globex = Supplier(id=2, name="Globex", products=[Product(id=2, sku="G-200")])
    session.add_all([acme, globex])
    session.commit()

    suppliers = SoftDeleteService(Supplier, session)
    products = SoftDeleteService(Product, session)

    print("=== Soft delete with cascade ===")
    suppliers.delete(acme, actor="jane.doe")
    session.commit()
    print(f"Active suppliers: {[s.name for s in session.scalars(select(Supplier))]}")
    print(f"Active products: {[p.sku for p in session.scalars(select(Product))]}")
    print(f"ACME deleted by {acme.deleted_by} at {acme.deleted}")

    print("\n=== Cancelling a delete ===")

    def protect_globex(event):
        if getattr(event.record, "name", None) == "Globex":
            print("Listener refused to delete Globex")
            return Outcome.stop(False)
        return None

    suppliers.on(BEFORE_DELETE, protect_globex)
    print(f"Delete returned: {suppliers.delete(globex, actor='jane.doe')}")

    print("\n=== Including deleted rows ===")
    everything = session.scalars(with_deleted(select(Product))).all()
    print(f"All products: {[p.sku for p in everything]}")
    deleted = session.scalars(products.query(only_deleted=True)).all()
    print(f"Deleted products: {[p.sku for p in deleted]}")

    print("\n=== Restore ===")
    product = deleted[0]
    products.restore(product)
    session.commit()
    print(f"Active products: {[p.sku for p in session.scalars(select(Product))]}")

    print("\n=== Purge ===")
    cutoff = datetime.now(timezone.utc) + timedelta(minutes=1)
    purged = suppliers.hard_delete_all(cutoff)
    session.commit()
    print(f"Purged {purged} suppliers")

    session.close()


if __name__ == "__main__":
    main()

"""
Materials & procurement models.

Models:
    - Material: catalogue item with a standard rate
    - MaterialRequest: site request; pending → approved / rejected, approved → fulfilled by a PO
    - PurchaseOrder / POItem
    - GoodsReceipt / GRNItem: receipt against an (optional) PO
    - StockEntry: in/out movement per project and material
    - InventoryTransfer: project → project movement, approved by a manager

Architecture chain: Organization → Project → PO → GRN → StockEntry
"""

from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.base import OrgModel

REQUEST_STATUSES = {"pending", "approved", "rejected", "fulfilled"}
PO_STATUSES = {"draft", "sent", "approved", "received", "cancelled"}
TRANSFER_STATUSES = {"pending", "approved", "rejected"}
STOCK_ENTRY_TYPES = {"in", "out"}


def _iso(value):
    return value.isoformat() if value else None


class Material(OrgModel):
    __tablename__ = "materials"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100))
    unit = db.Column(db.String(30), default="nos")
    standard_rate = db.Column(db.Float, default=0)
    description = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "standard_rate": self.standard_rate or 0,
            "description": self.description,
        }


class MaterialRequest(OrgModel):
    __tablename__ = "material_requests"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False
    )
    quantity = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float)
    priority = db.Column(db.String(20), default="medium")
    required_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default="pending")
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    material = db.relationship("Material", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "material_id": self.material_id,
            "material_name": self.material.name if self.material else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "priority": self.priority,
            "required_date": _iso(self.required_date),
            "notes": self.notes,
            "status": self.status,
            "requested_by": self.requested_by,
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
        }


class PurchaseOrder(OrgModel):
    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    po_number = db.Column(db.String(40), unique=True, nullable=False)
    vendor_name = db.Column(db.String(200), nullable=False)
    total_amount = db.Column(db.Float, default=0)
    status = db.Column(db.String(20), default="draft")
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    items = db.relationship(
        "POItem", back_populates="purchase_order", cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, include_items=False):
        d = {
            "id": self.id,
            "project_id": self.project_id,
            "po_number": self.po_number,
            "vendor_name": self.vendor_name,
            "total_amount": self.total_amount or 0,
            "status": self.status,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }
        if include_items:
            d["items"] = [i.to_dict() for i in self.items]
        return d


class POItem(db.Model):
    __tablename__ = "po_items"

    id = db.Column(db.Integer, primary_key=True)
    po_id = db.Column(
        db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False
    )
    quantity = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, default=0)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "po_id": self.po_id,
            "material_id": self.material_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price or 0,
            "amount": (self.quantity or 0) * (self.unit_price or 0),
        }


class GoodsReceipt(OrgModel):
    __tablename__ = "goods_receipts"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    po_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id", ondelete="SET NULL"))
    grn_number = db.Column(db.String(40), unique=True, nullable=False)
    vendor_name = db.Column(db.String(200), nullable=False)
    received_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    items = db.relationship(
        "GRNItem", back_populates="goods_receipt", cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, include_items=False):
        d = {
            "id": self.id,
            "project_id": self.project_id,
            "po_id": self.po_id,
            "grn_number": self.grn_number,
            "vendor_name": self.vendor_name,
            "received_date": _iso(self.received_date),
            "notes": self.notes,
        }
        if include_items:
            d["items"] = [i.to_dict() for i in self.items]
        return d


class GRNItem(db.Model):
    __tablename__ = "grn_items"

    id = db.Column(db.Integer, primary_key=True)
    grn_id = db.Column(
        db.Integer, db.ForeignKey("goods_receipts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False
    )
    quantity_received = db.Column(db.Float, nullable=False)
    quantity_accepted = db.Column(db.Float, nullable=False)
    notes = db.Column(db.Text)

    goods_receipt = db.relationship("GoodsReceipt", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "material_id": self.material_id,
            "quantity_received": self.quantity_received,
            "quantity_accepted": self.quantity_accepted,
            "notes": self.notes,
        }


class StockEntry(OrgModel):
    __tablename__ = "stock_entries"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False
    )
    quantity = db.Column(db.Float, nullable=False)
    entry_type = db.Column(db.String(5), nullable=False)  # in / out
    notes = db.Column(db.Text)
    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    recorded_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    material = db.relationship("Material", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "material_id": self.material_id,
            "material_name": self.material.name if self.material else None,
            "unit": self.material.unit if self.material else None,
            "quantity": self.quantity,
            "entry_type": self.entry_type,
            "notes": self.notes,
            "recorded_at": _iso(self.recorded_at),
        }


class InventoryTransfer(OrgModel):
    __tablename__ = "inventory_transfers"

    id = db.Column(db.Integer, primary_key=True)
    from_project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    to_project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    material_id = db.Column(
        db.Integer, db.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False
    )
    quantity = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), default="pending")
    notes = db.Column(db.Text)
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "from_project_id": self.from_project_id,
            "to_project_id": self.to_project_id,
            "material_id": self.material_id,
            "quantity": self.quantity,
            "status": self.status,
            "notes": self.notes,
            "approved_by": self.approved_by,
        }

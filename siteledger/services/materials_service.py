"""
Materials Service — procurement workflows.

Each workflow below is several inserts/updates (parent + children + stock
movements). They are flushed into the caller's session and committed by
the blueprint in one go; any failure rolls back the parent together with
its children, so a PO never exists without its items and an approved
transfer never exists without both stock movements.

Workflows:
  create_material         catalogue item (name, category, unit, standard rate)
  create_material_request pending site request for one material
  update_request_status   approve (records approver + time) / reject a pending request
  create_purchase_order   PO + items, total = Σ qty × unit_price
  create_po_from_request  approved request → PO + one item, request fulfilled
  create_goods_receipt    GRN + items + one stock "in" entry per item
  create_transfer         pending project → project transfer
  update_transfer_status  approve (stock out + in) / reject
  stock_balance           Σ in − Σ out per material for a project
"""

import logging
import random
import string
import time
from datetime import datetime, timezone

from sqlalchemy import case, func

from siteledger.core.exceptions import NotFoundError, ValidationError
from siteledger.models import db
from siteledger.models.materials import (
    GoodsReceipt,
    GRNItem,
    InventoryTransfer,
    Material,
    MaterialRequest,
    POItem,
    PurchaseOrder,
    StockEntry,
)
from siteledger.models.project import TASK_PRIORITIES, Project
from siteledger.utils.helpers import clean_text, parse_date, to_number

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def generate_document_number(prefix: str) -> str:
    """``<prefix>-<base36 epoch ms>-<3 random base36 chars>``, upper case."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=3))
    return f"{prefix}-{_base36(millis)}-{suffix}"


def _get_scoped(model, pk, org_id, label):
    try:
        key = int(pk)
    except (TypeError, ValueError):
        key = None
    obj = db.session.get(model, key) if key is not None else None
    if obj is None or obj.organization_id != org_id:
        raise NotFoundError(resource=label, resource_id=pk, organization_id=org_id)
    return obj


def _require_project(org_id, project_id) -> Project:
    if not project_id:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    return _get_scoped(Project, project_id, org_id, "Project")


def _require_material(org_id, material_id) -> Material:
    return _get_scoped(Material, material_id, org_id, "Material")


def _item_lines(org_id, data, quantity_key) -> list[tuple[dict, Material]]:
    """Item rows with a material and a non-zero quantity, paired with the Material."""
    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ValidationError("items must be a list of objects", details={"items": "invalid"})
    return [
        (i, _require_material(org_id, i["material_id"]))
        for i in items
        if i.get("material_id") and to_number(i.get(quantity_key))
    ]


# ═══════════════════════════════════════════════════════════════
# Catalogue
# ═══════════════════════════════════════════════════════════════

def _apply_material_fields(material: Material, data: dict) -> None:
    if "category" in data:
        material.category = clean_text(data.get("category"), "category") or None
    if "unit" in data:
        material.unit = clean_text(data.get("unit"), "unit") or "nos"
    if "standard_rate" in data:
        rate = to_number(data.get("standard_rate"))
        if rate < 0:
            raise ValidationError("standard_rate cannot be negative", details={"standard_rate": "invalid"})
        material.standard_rate = rate
    if "description" in data:
        material.description = clean_text(data.get("description"), "description") or None


def create_material(org_id: int, data: dict) -> Material:
    name = clean_text(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    material = Material(organization_id=org_id, name=name, unit="nos", standard_rate=0)
    _apply_material_fields(material, data)
    db.session.add(material)
    db.session.flush()
    logger.info("Material %s created (org=%s)", material.id, org_id)
    return material


def update_material(org_id: int, material_id: int, data: dict) -> Material:
    material = _require_material(org_id, material_id)
    if "name" in data:
        name = clean_text(data.get("name"), "name")
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        material.name = name
    _apply_material_fields(material, data)
    db.session.flush()
    return material


# ═══════════════════════════════════════════════════════════════
# Material requests
# ═══════════════════════════════════════════════════════════════

def create_material_request(org_id: int, user_id: int, data: dict) -> MaterialRequest:
    """Raise a pending request for one material on one project."""
    project = _require_project(org_id, data.get("project_id"))
    if not data.get("material_id"):
        raise ValidationError("material_id is required", details={"material_id": "required"})
    material = _require_material(org_id, data.get("material_id"))
    quantity = to_number(data.get("quantity"))
    if quantity <= 0:
        raise ValidationError("quantity must be positive", details={"quantity": "invalid"})

    priority = data.get("priority") or "medium"
    if not isinstance(priority, str) or priority not in TASK_PRIORITIES:
        raise ValidationError(
            f"priority must be one of {sorted(TASK_PRIORITIES)}", details={"priority": "invalid"}
        )
    required_date = None
    if data.get("required_date"):
        required_date = parse_date(data.get("required_date"))
        if required_date is None:
            raise ValidationError("Invalid required_date", details={"required_date": "invalid"})
    unit_price = to_number(data.get("unit_price")) or None

    req = MaterialRequest(
        organization_id=org_id,
        project_id=project.id,
        material_id=material.id,
        quantity=quantity,
        unit_price=unit_price,
        priority=priority,
        required_date=required_date,
        notes=clean_text(data.get("notes"), "notes") or None,
        status="pending",
        requested_by=user_id,
    )
    db.session.add(req)
    db.session.flush()
    logger.info("Material request %s raised on project %s by user %s", req.id, project.id, user_id)
    return req


def update_request_status(org_id: int, user_id: int, request_id: int, status: str) -> MaterialRequest:
    """Approve or reject a pending request; approval records who and when."""
    if status not in ("approved", "rejected"):
        raise ValidationError("status must be approved or rejected", details={"status": "invalid"})
    req = _get_scoped(MaterialRequest, request_id, org_id, "MaterialRequest")
    if req.status != "pending":
        raise ValidationError(f"Material request is already {req.status}")

    req.status = status
    if status == "approved":
        req.approved_by = user_id
        req.approved_at = datetime.now(timezone.utc)
    db.session.flush()
    logger.info("Material request %s %s by user %s", req.id, status, user_id)
    return req


# ═══════════════════════════════════════════════════════════════
# Purchase orders
# ═══════════════════════════════════════════════════════════════

def create_purchase_order(org_id: int, user_id: int, data: dict) -> PurchaseOrder:
    project = _require_project(org_id, data.get("project_id"))
    vendor_name = clean_text(data.get("vendor_name"), "vendor_name")
    if not vendor_name:
        raise ValidationError("vendor_name is required", details={"vendor_name": "required"})

    lines = _item_lines(org_id, data, "quantity")

    po = PurchaseOrder(
        organization_id=org_id,
        project_id=project.id,
        po_number=generate_document_number("PO"),
        vendor_name=vendor_name,
        total_amount=sum(to_number(i.get("quantity")) * to_number(i.get("unit_price")) for i, _ in lines),
        notes=clean_text(data.get("notes"), "notes") or None,
        created_by=user_id,
    )
    db.session.add(po)
    db.session.flush()

    for line, material in lines:
        db.session.add(POItem(
            po_id=po.id,
            material_id=material.id,
            quantity=to_number(line.get("quantity")),
            unit_price=to_number(line.get("unit_price")),
        ))
    db.session.flush()
    logger.info("PO %s created with %d items (org=%s)", po.po_number, len(lines), org_id)
    return po


def create_po_from_request(org_id: int, user_id: int, request_id: int, vendor_name: str) -> PurchaseOrder:
    """Turn an approved material request into a one-line PO."""
    req = _get_scoped(MaterialRequest, request_id, org_id, "MaterialRequest")
    if req.status != "approved":
        raise ValidationError("Only approved material requests can be converted to a PO")
    vendor_name = clean_text(vendor_name, "vendor_name")
    if not vendor_name:
        raise ValidationError("vendor_name is required", details={"vendor_name": "required"})

    unit_price = to_number(req.unit_price) or to_number(req.material.standard_rate if req.material else 0)
    po = PurchaseOrder(
        organization_id=org_id,
        project_id=req.project_id,
        po_number=generate_document_number("PO"),
        vendor_name=vendor_name,
        total_amount=to_number(req.quantity) * unit_price,
        notes="Auto-created from Material Request",
        created_by=user_id,
    )
    db.session.add(po)
    db.session.flush()

    db.session.add(POItem(
        po_id=po.id,
        material_id=req.material_id,
        quantity=req.quantity,
        unit_price=unit_price,
    ))
    req.status = "fulfilled"
    db.session.flush()
    logger.info("PO %s created from request %s", po.po_number, req.id)
    return po


# ═══════════════════════════════════════════════════════════════
# Goods receipts
# ═══════════════════════════════════════════════════════════════

def create_goods_receipt(org_id: int, user_id: int, data: dict) -> GoodsReceipt:
    project = _require_project(org_id, data.get("project_id"))
    vendor_name = clean_text(data.get("vendor_name"), "vendor_name")
    if not vendor_name:
        raise ValidationError("vendor_name is required", details={"vendor_name": "required"})
    po_id = data.get("po_id") or None
    if po_id is not None:
        po_id = _get_scoped(PurchaseOrder, po_id, org_id, "PurchaseOrder").id

    lines = _item_lines(org_id, data, "quantity_received")

    grn = GoodsReceipt(
        organization_id=org_id,
        project_id=project.id,
        po_id=po_id,
        grn_number=generate_document_number("GRN"),
        vendor_name=vendor_name,
        received_date=parse_date(data.get("received_date")) or datetime.now(timezone.utc).date(),
        notes=clean_text(data.get("notes"), "notes") or None,
        received_by=user_id,
    )
    db.session.add(grn)
    db.session.flush()

    for line, material in lines:
        received = to_number(line.get("quantity_received"))
        accepted = to_number(line.get("quantity_accepted")) or received
        db.session.add(GRNItem(
            grn_id=grn.id,
            material_id=material.id,
            quantity_received=received,
            quantity_accepted=accepted,
            notes=clean_text(line.get("notes"), "notes") or None,
        ))
        db.session.add(StockEntry(
            organization_id=org_id,
            project_id=project.id,
            material_id=material.id,
            quantity=accepted,
            entry_type="in",
            notes=f"GRN: {grn.grn_number}",
            recorded_by=user_id,
        ))
    db.session.flush()
    logger.info("GRN %s created with %d items (org=%s)", grn.grn_number, len(lines), org_id)
    return grn


# ═══════════════════════════════════════════════════════════════
# Inventory transfers
# ═══════════════════════════════════════════════════════════════

def create_transfer(org_id: int, user_id: int, data: dict) -> InventoryTransfer:
    source = _require_project(org_id, data.get("from_project_id"))
    target = _require_project(org_id, data.get("to_project_id"))
    if source.id == target.id:
        raise ValidationError("Source and destination projects must differ")
    material = _require_material(org_id, data.get("material_id"))
    quantity = to_number(data.get("quantity"))
    if quantity <= 0:
        raise ValidationError("quantity must be positive", details={"quantity": "invalid"})

    transfer = InventoryTransfer(
        organization_id=org_id,
        from_project_id=source.id,
        to_project_id=target.id,
        material_id=material.id,
        quantity=quantity,
        notes=clean_text(data.get("notes"), "notes") or None,
        requested_by=user_id,
    )
    db.session.add(transfer)
    db.session.flush()
    return transfer


def update_transfer_status(org_id: int, user_id: int, transfer_id: int, status: str) -> InventoryTransfer:
    """Approve or reject a pending transfer.

    Approval writes a stock ``out`` on the source project and an ``in`` on
    the destination; rejection only changes the status.
    """
    if status not in ("approved", "rejected"):
        raise ValidationError("status must be approved or rejected", details={"status": "invalid"})
    transfer = _get_scoped(InventoryTransfer, transfer_id, org_id, "InventoryTransfer")
    if transfer.status != "pending":
        raise ValidationError(f"Transfer is already {transfer.status}")

    transfer.status = status
    if status == "approved":
        transfer.approved_by = user_id
        db.session.add(StockEntry(
            organization_id=org_id,
            project_id=transfer.from_project_id,
            material_id=transfer.material_id,
            quantity=transfer.quantity,
            entry_type="out",
            notes="Transfer to project (approved)",
            recorded_by=user_id,
        ))
        db.session.add(StockEntry(
            organization_id=org_id,
            project_id=transfer.to_project_id,
            material_id=transfer.material_id,
            quantity=transfer.quantity,
            entry_type="in",
            notes="Transfer from project (approved)",
            recorded_by=user_id,
        ))
    db.session.flush()
    logger.info("Transfer %s %s by user %s", transfer.id, status, user_id)
    return transfer


# ═══════════════════════════════════════════════════════════════
# Stock
# ═══════════════════════════════════════════════════════════════

def stock_balance(org_id: int, project_id: int) -> list[dict]:
    """Current balance per material for one project."""
    _get_scoped(Project, project_id, org_id, "Project")
    signed = case((StockEntry.entry_type == "out", -StockEntry.quantity), else_=StockEntry.quantity)
    rows = (
        db.session.query(Material.id, Material.name, Material.unit, func.sum(signed))
        .join(StockEntry, StockEntry.material_id == Material.id)
        .filter(StockEntry.organization_id == org_id, StockEntry.project_id == project_id)
        .group_by(Material.id, Material.name, Material.unit)
        .order_by(Material.name)
        .all()
    )
    return [
        {"material_id": mid, "material_name": name, "unit": unit, "balance": float(total or 0)}
        for mid, name, unit, total in rows
    ]

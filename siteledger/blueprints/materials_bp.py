"""
Materials Blueprint — procurement endpoints.

Endpoints:
    MATERIAL  /api/v1/materials                            GET, POST
              /api/v1/materials/<id>                       PUT
    REQUEST   /api/v1/material-requests                    GET, POST
              /api/v1/material-requests/<id>/status        PATCH
    PO        /api/v1/purchase-orders                      GET, POST
              /api/v1/purchase-orders/from-request         POST
    GRN       /api/v1/goods-receipts                       GET, POST
    TRANSFER  /api/v1/inventory-transfers                  GET, POST
              /api/v1/inventory-transfers/<id>/status      PATCH
    STOCK     /api/v1/projects/<id>/stock                  GET

Each POST/PATCH is one transaction: the service flushes parent, children
and stock movements; the commit happens here, once.
"""

import logging

from flask import Blueprint, g, jsonify, request

from siteledger.blueprints import get_scoped_or_404, json_body, paginate_query, target_organization_id
from siteledger.middleware.permission_required import login_required, require_permission
from siteledger.models.materials import (
    GoodsReceipt,
    InventoryTransfer,
    Material,
    MaterialRequest,
    PurchaseOrder,
)
from siteledger.models.project import Project
from siteledger.services import materials_service
from siteledger.services.permission_service import Permission
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

materials_bp = Blueprint("materials", __name__, url_prefix="/api/v1")
register_domain_error_handlers(materials_bp)


def _project_org(data, key="project_id"):
    """Organization of the referenced project; 404 when it is not visible."""
    return get_scoped_or_404(Project, data.get(key)).organization_id


def _list(model, order_by):
    q = model.query_for_orgs(g.access.accessible_organization_ids)
    project_id = request.args.get("project_id", type=int)
    if project_id and hasattr(model, "project_id"):
        q = q.filter(model.project_id == project_id)
    status = request.args.get("status")
    if status and hasattr(model, "status"):
        q = q.filter(model.status == status)
    items, total = paginate_query(q.order_by(order_by))
    return jsonify({"items": [i.to_dict() for i in items], "total": total})


# ═══════════════════════════════════════════════════════════════════════════
#  MATERIAL CATALOGUE
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/materials", methods=["GET"])
@login_required
def list_materials():
    return _list(Material, Material.name)


@materials_bp.route("/materials", methods=["POST"])
@require_permission(Permission.MATERIALS_MANAGE)
def create_material():
    data = json_body()
    material = materials_service.create_material(target_organization_id(data), data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(material.to_dict()), 201


@materials_bp.route("/materials/<int:material_id>", methods=["PUT"])
@require_permission(Permission.MATERIALS_MANAGE)
def update_material(material_id):
    material = get_scoped_or_404(Material, material_id)
    material = materials_service.update_material(material.organization_id, material.id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(material.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  MATERIAL REQUESTS
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/material-requests", methods=["GET"])
@login_required
def list_material_requests():
    return _list(MaterialRequest, MaterialRequest.id.desc())


@materials_bp.route("/material-requests", methods=["POST"])
@require_permission(Permission.MATERIALS_REQUEST)
def create_material_request():
    data = json_body()
    req = materials_service.create_material_request(_project_org(data), g.access.user_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict()), 201


@materials_bp.route("/material-requests/<int:request_id>/status", methods=["PATCH"])
@require_permission(Permission.MATERIALS_APPROVE)
def update_material_request_status(request_id):
    req = get_scoped_or_404(MaterialRequest, request_id)
    data = json_body()
    req = materials_service.update_request_status(
        req.organization_id, g.access.user_id, req.id, data.get("status"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  PURCHASE ORDERS
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/purchase-orders", methods=["GET"])
@login_required
def list_purchase_orders():
    return _list(PurchaseOrder, PurchaseOrder.id.desc())


@materials_bp.route("/purchase-orders", methods=["POST"])
@require_permission(Permission.MATERIALS_MANAGE)
def create_purchase_order():
    data = json_body()
    po = materials_service.create_purchase_order(_project_org(data), g.access.user_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(po.to_dict(include_items=True)), 201


@materials_bp.route("/purchase-orders/from-request", methods=["POST"])
@require_permission(Permission.MATERIALS_MANAGE)
def create_po_from_request():
    data = json_body()
    req = get_scoped_or_404(MaterialRequest, data.get("request_id"))
    po = materials_service.create_po_from_request(
        req.organization_id, g.access.user_id, req.id, data.get("vendor_name"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(po.to_dict(include_items=True)), 201


# ═══════════════════════════════════════════════════════════════════════════
#  GOODS RECEIPTS
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/goods-receipts", methods=["GET"])
@login_required
def list_goods_receipts():
    return _list(GoodsReceipt, GoodsReceipt.id.desc())


@materials_bp.route("/goods-receipts", methods=["POST"])
@require_permission(Permission.MATERIALS_MANAGE)
def create_goods_receipt():
    data = json_body()
    grn = materials_service.create_goods_receipt(_project_org(data), g.access.user_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(grn.to_dict(include_items=True)), 201


# ═══════════════════════════════════════════════════════════════════════════
#  INVENTORY TRANSFERS
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/inventory-transfers", methods=["GET"])
@login_required
def list_transfers():
    return _list(InventoryTransfer, InventoryTransfer.id.desc())


@materials_bp.route("/inventory-transfers", methods=["POST"])
@require_permission(Permission.MATERIALS_MANAGE)
def create_transfer():
    data = json_body()
    transfer = materials_service.create_transfer(
        _project_org(data, "from_project_id"), g.access.user_id, data,
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(transfer.to_dict()), 201


@materials_bp.route("/inventory-transfers/<int:transfer_id>/status", methods=["PATCH"])
@require_permission(Permission.MATERIALS_APPROVE)
def update_transfer_status(transfer_id):
    transfer = get_scoped_or_404(InventoryTransfer, transfer_id)
    data = json_body()
    transfer = materials_service.update_transfer_status(
        transfer.organization_id, g.access.user_id, transfer.id, data.get("status"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(transfer.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  STOCK
# ═══════════════════════════════════════════════════════════════════════════

@materials_bp.route("/projects/<int:project_id>/stock", methods=["GET"])
@login_required
def project_stock(project_id):
    project = get_scoped_or_404(Project, project_id)
    items = materials_service.stock_balance(project.organization_id, project.id)
    return jsonify({"project_id": project.id, "items": items})

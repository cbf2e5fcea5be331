"""
OrgModel — Abstract base class for organization-scoped models.

All tables owned by an organization inherit from OrgModel instead of
db.Model directly. This adds:
  - organization_id FK column with index (cascade on organization delete)
  - query_for_org(organization_id) / query_for_orgs(ids) classmethods
"""

import sqlalchemy as sa

from siteledger.models import db


class OrgModel(db.Model):
    """Abstract base for organization-scoped tables."""
    __abstract__ = True

    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_org(cls, organization_id):
        """Return a query filtered by a single organization_id."""
        return cls.query.filter_by(organization_id=organization_id)

    @classmethod
    def query_for_orgs(cls, organization_ids):
        """Return a query filtered to a set of organization ids.

        An empty set yields an empty query rather than an unscoped one.
        """
        ids = list(organization_ids or [])
        if not ids:
            return cls.query.filter(sa.false())
        return cls.query.filter(cls.organization_id.in_(ids))
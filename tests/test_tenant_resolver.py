"""
Tests for tenant identifier resolution
"""

import pytest
import uuid

from detailbook.core.exceptions import BookingValidationError, NotFoundError
from detailbook.services.tenant_resolver import (
    TenantResolver, is_internal_id, normalize_tenant_ref, slugify, validate_slug
)


class TestNormalize:
    def test_internal_id_passes_through_without_lookup(self, db):
        tenant_id = uuid.uuid4()

        # Unknown id still normalizes: the check is structural
        assert normalize_tenant_ref(db, str(tenant_id)) == tenant_id
        assert normalize_tenant_ref(db, tenant_id) == tenant_id

    def test_slug_resolves_to_internal_id(self, db, tenant):
        assert normalize_tenant_ref(db, "detailer-42") == tenant.id

    def test_slug_is_case_insensitive(self, db, tenant):
        assert normalize_tenant_ref(db, "Detailer-42") == tenant.id

    def test_unknown_slug(self, db, tenant):
        with pytest.raises(NotFoundError):
            normalize_tenant_ref(db, "no-such-shop")

    def test_inactive_tenant_slug_not_resolved(self, db, tenant_factory):
        tenant_factory("closed-shop", is_active=False)

        with pytest.raises(NotFoundError):
            normalize_tenant_ref(db, "closed-shop")

    def test_blank_reference(self, db):
        with pytest.raises(NotFoundError):
            normalize_tenant_ref(db, "  ")

    def test_is_internal_id(self):
        assert is_internal_id(str(uuid.uuid4()))
        assert is_internal_id(str(uuid.uuid4()).upper())
        assert not is_internal_id("detailer-42")


class TestResolver:
    def test_round_trip(self, db, tenant):
        resolver = TenantResolver(db)

        assert resolver.resolve(resolver.slug_for(tenant.id)) == tenant.id
        assert resolver.get_tenant(tenant.slug).id == tenant.id
        assert resolver.get_tenant(str(tenant.id)).slug == tenant.slug

    def test_get_tenant_unknown_id(self, db):
        with pytest.raises(NotFoundError):
            TenantResolver(db).get_tenant(uuid.uuid4())

    def test_authorize_accepts_both_representations(self, db, tenant):
        resolver = TenantResolver(db)

        assert resolver.authorize(tenant.id, tenant.slug)
        assert resolver.authorize(tenant.slug, str(tenant.id))
        assert resolver.authorize(str(tenant.id), tenant.id)

    def test_authorize_rejects_other_tenant(self, db, tenant, other_tenant):
        resolver = TenantResolver(db)

        assert not resolver.authorize(tenant.id, other_tenant.slug)
        assert not resolver.authorize(other_tenant.id, tenant.id)

    def test_authorize_unknown_slug_is_false(self, db, tenant):
        assert not TenantResolver(db).authorize(tenant.id, "ghost-shop")

    def test_unique_slug_suffixes(self, db, tenant, tenant_factory):
        resolver = TenantResolver(db)

        assert resolver.unique_slug("fresh-shop") == "fresh-shop"
        assert resolver.unique_slug("detailer-42") == "detailer-42-2"

        tenant_factory("detailer-42-2")
        assert resolver.unique_slug("detailer-42") == "detailer-42-3"


class TestSlugRules:
    def test_slugify(self):
        assert slugify("Joe's Auto Spa & Detail") == "joes-auto-spa-detail"
        assert slugify("  Mobile   Shine  ") == "mobile-shine"
        assert len(slugify("A" * 80)) == 30

    def test_validate_slug_rejects_uuid_shape(self):
        with pytest.raises(BookingValidationError):
            validate_slug(str(uuid.uuid4()))

    @pytest.mark.parametrize("slug", ["", "bad slug", "trailing-", "under_score"])
    def test_validate_slug_rejects_malformed(self, slug):
        with pytest.raises(BookingValidationError):
            validate_slug(slug)

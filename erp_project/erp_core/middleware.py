from django.utils.deprecation import MiddlewareMixin
from .models import EntityMembership


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Run on every request and attach
    #   request.company       → tenant every query is scoped to
    #   request.membership    → role of the user in that tenant
    #   request.contact_scope → contact id a CONTACT login is limited to
    def process_request(self, request):
        request.company = None
        request.membership = None
        request.contact_scope = None

        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            # Unauthenticated users
            return

        memberships = EntityMembership.objects.filter(
            user=user, is_active=True).select_related("company")

        # If user switched companies,
        # choice is stored in the session as "active_company_id"
        company_id = request.session.get("active_company_id")
        if company_id:
            # user must be a member of that company; a tampered session
            # simply ends up with no company
            memberships = memberships.filter(company_id=company_id)

        # Default company fallback: the oldest active membership
        membership = memberships.order_by("created_at", "id").first()
        if membership is None:
            return

        request.membership = membership
        request.company = membership.company
        request.contact_scope = membership.contact_scope

from rest_framework import permissions

from .services.common import default_evaluator, require
from .visibility import AssetView, UserView


class AssetPermission(permissions.BasePermission):
    """
    Single authorisation point for asset routes.

    Every object action maps to one :class:`~assets.visibility.VisibilityEvaluator`
    check. Object actions missing from the map are denied.
    """
    action_permission_map = {
        'retrieve': 'can_view',
        'update': 'can_edit',
        'partial_update': 'can_edit',
        'destroy': 'can_delete',
        'submit': 'can_edit',
        'resubmit': 'can_edit',
        'revert_to_draft': 'can_edit',
        'approve': 'can_review',
        'reject': 'can_review',
        'visibility': 'can_modify_visibility',
        'download_url': 'can_download',
        'permission_summary': 'can_view',
        # nested routes
        'versions': 'can_view',
        'add_version': 'can_edit',
        'carousel_items': 'can_view',
        'add_carousel_items': 'can_edit',
        'shares': 'can_share',
        'usage': 'can_view',
        'log_usage': 'can_log_platform_usage',
    }
    review_only_actions = {'pending'}

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if view.action in self.review_only_actions:
            evaluator = self.get_evaluator(view)
            require(evaluator.can_review(self.user_view(request)), action=view.action, actor=user)
        return True

    def has_object_permission(self, request, view, obj):
        action = getattr(view, 'asset_action', None) or view.action
        check = self.action_permission_map.get(action)
        allowed = False
        if check is not None:
            evaluator = self.get_evaluator(view)
            user_view = self.user_view(request)
            if check == 'can_review':
                allowed = evaluator.can_review(user_view)
            else:
                allowed = getattr(evaluator, check)(user_view, AssetView.from_model(obj))
        require(allowed, action=action or request.method.lower(), actor=request.user, asset=obj)
        return True

    @staticmethod
    def get_evaluator(view):
        getter = getattr(view, 'get_evaluator', None)
        return getter() if getter is not None else default_evaluator()

    @staticmethod
    def user_view(request):
        cached = getattr(request, '_asset_user_view', None)
        if cached is None:
            cached = UserView.from_model(request.user)
            request._asset_user_view = cached
        return cached

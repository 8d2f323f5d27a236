from rest_framework import permissions


class IsAdminOrManager(permissions.BasePermission):
    message = "Insufficient permissions. Only ADMIN and MANAGER roles can perform this action."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.can_reassign)


class IsWorkerOrAbove(permissions.BasePermission):
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

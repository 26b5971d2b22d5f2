# users/views/me.py

from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from permissions.roles import capabilities_for, is_approver
from users.models import User


class MeSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)
    is_approver = serializers.SerializerMethodField()
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "display_name",
            "role",
            "is_approver",
            "capabilities",
        ]

    def get_is_approver(self, obj) -> bool:
        return is_approver(obj)

    def get_capabilities(self, obj) -> list[str]:
        return sorted(capabilities_for(obj))


class MeView(APIView):
    """Who am I, and what may I do? Frontends hide actions from this."""

    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(tags=["auth"], responses={200: MeSerializer})
    def get(self, request):
        return Response(MeSerializer(request.user).data)

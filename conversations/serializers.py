from rest_framework import serializers

from .documents import MESSAGE_ROLES


class MessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=MESSAGE_ROLES)
    content = serializers.CharField(max_length=32000)

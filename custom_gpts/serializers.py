from rest_framework import serializers

from .documents import DEFAULT_MODEL


class KnowledgeFileSerializer(serializers.Serializer):
    fileName = serializers.CharField(max_length=255)
    fileUrl = serializers.CharField(max_length=2048, required=False, allow_blank=True, default="")


class CustomGptSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=2,
        max_length=100,
        error_messages={
            "min_length": "Name must be at least 2 characters long",
            "max_length": "Name must be less than 100 characters",
        },
    )
    description = serializers.CharField(
        min_length=10,
        max_length=500,
        error_messages={
            "min_length": "Description must be at least 10 characters long",
            "max_length": "Description must be less than 500 characters",
        },
    )
    instructions = serializers.CharField(
        min_length=10,
        error_messages={"min_length": "Instructions must be at least 10 characters long"},
    )
    conversationStarter = serializers.CharField(required=False, allow_blank=True)
    model = serializers.CharField(required=False, allow_blank=True, max_length=200)
    capabilities = serializers.DictField(child=serializers.BooleanField(), required=False)
    imageUrl = serializers.CharField(required=False, allow_blank=True, max_length=2048)
    knowledgeBase = KnowledgeFileSerializer(many=True, required=False)
    folder = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)

    def validate_model(self, value):
        return value.strip() or DEFAULT_MODEL

    def validate_folder(self, value):
        # blank folder means "no folder"
        if value is None:
            return None
        return value.strip() or None

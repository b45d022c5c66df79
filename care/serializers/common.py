import bleach
from rest_framework import serializers


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


class CleanCharField(serializers.CharField):
    """CharField that strips markup from the submitted value."""

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))


class PageQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


class DateRangeQuerySerializer(PageQuerySerializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
    status = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get('start') and attrs.get('end') and attrs['start'] > attrs['end']:
            raise serializers.ValidationError({'end': 'End date must not be before start date'})
        return attrs


def paginate(qs, page=None, page_size=None):
    """Slice ``qs`` and return (items, total)."""
    total = qs.count()
    if page_size:
        start = ((page or 1) - 1) * page_size
        qs = qs[start:start + page_size]
    return list(qs), total

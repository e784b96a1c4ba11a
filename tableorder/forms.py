from django import forms
from django.utils.translation import gettext_lazy as _

from .models import Order, ServiceCall, TAKEAWAY, is_takeaway


class CaseInsensitiveChoiceField(forms.ChoiceField):
    """ChoiceField matching upper-case choice keys whatever case is sent."""

    def to_python(self, value):
        return super().to_python(value).upper()


class OrderPlacementForm(forms.Form):
    customer_name = forms.CharField(max_length=120)
    table_number = forms.CharField(max_length=20)
    payment_method = CaseInsensitiveChoiceField(choices=Order.PAYMENT_METHOD_CHOICES)

    def clean_table_number(self):
        value = self.cleaned_data['table_number']
        return TAKEAWAY if is_takeaway(value) else value


class LineItemForm(forms.Form):
    name = forms.CharField(max_length=200)
    unit_price = forms.IntegerField(min_value=0)
    quantity = forms.IntegerField(min_value=1)
    customizations = forms.JSONField(required=False)

    def clean_customizations(self):
        value = self.cleaned_data.get('customizations') or []
        if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
            raise forms.ValidationError(_('Customizations must be a list of labels'))
        labels = set()
        for label in value:
            if not isinstance(label, str) or not label.strip():
                raise forms.ValidationError(_('Customizations must be a list of labels'))
            labels.add(label.strip())
        return sorted(labels)


class ServiceCallForm(forms.Form):
    table_number = forms.CharField(max_length=20)
    call_type = CaseInsensitiveChoiceField(choices=ServiceCall.TYPE_CHOICES)

    def clean_table_number(self):
        value = self.cleaned_data['table_number']
        if is_takeaway(value):
            raise forms.ValidationError(_('Valid table number required.'))
        return value


class DishAvailabilityForm(forms.Form):
    is_available = forms.BooleanField(required=False)

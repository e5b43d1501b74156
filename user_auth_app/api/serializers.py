"""Auth API serializers.

Provides serializers for user registration and login. Registration enforces
unique username/email, password validation and the role-specific fields (a
delivery partner must name a vehicle); login accepts a username or an email.
"""

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.validators import RegexValidator, validate_email
from django.db import transaction
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from profiles.models import Profile, Role, VehicleType

User = get_user_model()

name_validator = RegexValidator(r"^[a-zA-Z\s]+$", _("Only letters and spaces are allowed."))
username_validator = RegexValidator(
    r"^[a-zA-Z0-9_]+$", _("Username can only contain letters, numbers, and underscores.")
)
mobile_validator = RegexValidator(r"^[6-9]\d{9}$", _("Please provide a valid 10-digit phone number."))


class RegistrationSerializer(serializers.Serializer):
    """Validate and create a new user together with its role profile."""

    username = serializers.CharField(min_length=3, max_length=30, validators=[username_validator])
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    repeated_password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=Role.choices)
    first_name = serializers.CharField(min_length=2, max_length=50, validators=[name_validator])
    last_name = serializers.CharField(min_length=2, max_length=50, validators=[name_validator])
    phone = serializers.CharField(validators=[mobile_validator])
    vehicle_type = serializers.ChoiceField(choices=VehicleType.choices, required=False, allow_blank=True)

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError(_("Username already taken."))
        return value

    def validate_email(self, value):
        validate_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(_("Email already in use."))
        return value.lower()

    def validate(self, attrs):
        if attrs["password"] != attrs["repeated_password"]:
            raise serializers.ValidationError(
                {"repeated_password": _("Passwords do not match.")}
            )
        if attrs["role"] == Role.DELIVERY_PARTNER and not attrs.get("vehicle_type"):
            raise serializers.ValidationError(
                {"vehicle_type": _("Vehicle type is required for delivery partners.")}
            )
        if attrs["role"] == Role.RESTAURANT_MANAGER:
            attrs["vehicle_type"] = ""
        validate_password(attrs["password"])
        return attrs

    def create(self, validated_data):
        # `repeated_password` is never persisted; role data goes to the profile.
        validated_data.pop("repeated_password", None)
        role = validated_data.pop("role")
        phone = validated_data.pop("phone")
        vehicle_type = validated_data.pop("vehicle_type", "")
        raw_password = validated_data.pop("password")
        with transaction.atomic():
            user = User(**validated_data)
            user.set_password(raw_password)
            user.save()
            Profile.create_for(user, role, phone=phone, vehicle_type=vehicle_type)
        return user


class LoginSerializer(serializers.Serializer):
    """Authenticate username-or-email/password and attach the user to validated data."""

    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = attrs.get("username", "")
        if "@" in identifier:
            match = User.objects.filter(email__iexact=identifier).only("username").first()
            if match is not None:
                identifier = match.username
        user = authenticate(username=identifier, password=attrs.get("password"))
        if not user:
            raise serializers.ValidationError({"detail": "Invalid Credentials"})
        attrs["user"] = user
        return attrs

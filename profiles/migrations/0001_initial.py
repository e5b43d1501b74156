import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("restaurant_manager", "restaurant_manager"), ("delivery_partner", "delivery_partner")], max_length=32)),
                ("phone", models.CharField(blank=True, default="", max_length=10, validators=[django.core.validators.RegexValidator("^\\d{10}$", "Please enter a valid 10-digit phone number.")])),
                ("vehicle_type", models.CharField(blank=True, choices=[("bike", "bike"), ("scooter", "scooter"), ("bicycle", "bicycle"), ("car", "car")], default="", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("is_available", models.BooleanField(default=False)),
                ("rating", models.DecimalField(decimal_places=1, default=Decimal("5.0"), max_digits=2, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("5"))])),
                ("completed_deliveries", models.PositiveIntegerField(default=0)),
                ("rated_deliveries", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["role"], name="profile_role_idx"),
                    models.Index(fields=["role", "is_available"], name="profile_availability_idx"),
                ],
            },
        ),
    ]

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("profiles", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_id", models.CharField(editable=False, max_length=9, unique=True, validators=[django.core.validators.RegexValidator("^ORD\\d{6}$", "Order ID must be in format ORD123456.")])),
                ("customer_name", models.CharField(max_length=100)),
                ("customer_phone", models.CharField(max_length=10, validators=[django.core.validators.RegexValidator("^\\d{10}$", "Please enter a valid 10-digit phone number.")])),
                ("street", models.CharField(max_length=200)),
                ("city", models.CharField(max_length=50)),
                ("pincode", models.CharField(max_length=6, validators=[django.core.validators.RegexValidator("^\\d{6}$", "Pincode must be exactly 6 digits.")])),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("prep_time", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(5), django.core.validators.MaxValueValidator(120)])),
                ("estimated_delivery_time", models.PositiveSmallIntegerField(default=30, validators=[django.core.validators.MinValueValidator(10), django.core.validators.MaxValueValidator(60)])),
                ("dispatch_time", models.DateTimeField(blank=True, null=True)),
                ("status", models.CharField(choices=[("PENDING", "PENDING"), ("PREP", "PREP"), ("READY", "READY"), ("PICKED", "PICKED"), ("ON_ROUTE", "ON_ROUTE"), ("DELIVERED", "DELIVERED"), ("CANCELLED", "CANCELLED")], default="PENDING", max_length=20)),
                ("priority", models.CharField(choices=[("LOW", "LOW"), ("MEDIUM", "MEDIUM"), ("HIGH", "HIGH"), ("URGENT", "URGENT")], default="MEDIUM", max_length=10)),
                ("order_placed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("prep_started_at", models.DateTimeField(blank=True, null=True)),
                ("ready_at", models.DateTimeField(blank=True, null=True)),
                ("picked_at", models.DateTimeField(blank=True, null=True)),
                ("on_route_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("delivery_partner", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="orders_delivered", to=settings.AUTH_USER_MODEL)),
                ("restaurant_manager", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders_managed", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("-order_placed_at", "-id"),
                "indexes": [
                    models.Index(fields=["status"], name="order_status_idx"),
                    models.Index(fields=["priority", "order_placed_at"], name="order_priority_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status__in", ["PICKED", "ON_ROUTE"])), fields=("delivery_partner",), name="one_active_delivery_per_partner"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("quantity", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(20)])),
                ("price", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("category", models.CharField(choices=[("appetizer", "appetizer"), ("main_course", "main_course"), ("dessert", "dessert"), ("beverage", "beverage"), ("side_dish", "side_dish")], default="main_course", max_length=20)),
                ("special_instructions", models.CharField(blank=True, default="", max_length=200)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
            options={
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="OrderRating",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("food_quality", models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("delivery_service", models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("overall_experience", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("feedback", models.TextField(blank=True, default="", validators=[django.core.validators.MaxLengthValidator(500)])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="rating", to="orders.order")),
            ],
        ),
        migrations.CreateModel(
            name="TrackingNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("note", models.TextField()),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("added_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tracking_notes", to=settings.AUTH_USER_MODEL)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tracking_notes", to="orders.order")),
            ],
            options={
                "ordering": ("timestamp", "id"),
            },
        ),
    ]

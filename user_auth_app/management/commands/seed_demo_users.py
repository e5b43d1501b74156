from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from rest_framework.authtoken.models import Token

from profiles.models import Profile, Role, VehicleType, default_availability

DEMO_USERS = (
    {
        "username": "manager_demo",
        "password": "Demo!Manager1",
        "email": "manager@example.com",
        "first_name": "Meera",
        "last_name": "Rao",
        "role": Role.RESTAURANT_MANAGER,
        "phone": "9876543210",
        "vehicle_type": "",
    },
    {
        "username": "partner_bike",
        "password": "Demo!Partner1",
        "email": "bike@example.com",
        "first_name": "Arjun",
        "last_name": "Singh",
        "role": Role.DELIVERY_PARTNER,
        "phone": "9876543211",
        "vehicle_type": VehicleType.BIKE,
    },
    {
        "username": "partner_scooter",
        "password": "Demo!Partner2",
        "email": "scooter@example.com",
        "first_name": "Kavya",
        "last_name": "Nair",
        "role": Role.DELIVERY_PARTNER,
        "phone": "9876543212",
        "vehicle_type": VehicleType.SCOOTER,
    },
)


class Command(BaseCommand):
    help = "Create or update demo manager and delivery partner accounts."

    def handle(self, *args, **options):
        User = get_user_model()

        for cfg in DEMO_USERS:
            u, created = User.objects.get_or_create(
                username=cfg["username"],
                defaults={
                    "email": cfg["email"],
                    "first_name": cfg["first_name"],
                    "last_name": cfg["last_name"],
                },
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created user '{u.username}'"))
            else:
                self.stdout.write(f"User '{u.username}' already exists")

            # set (or reset) password to the documented demo value
            u.set_password(cfg["password"])
            u.save(update_fields=["password"])

            prof = Profile.objects.filter(user=u).first()
            if prof is None:
                prof = Profile.create_for(
                    u, cfg["role"], phone=cfg["phone"], vehicle_type=cfg["vehicle_type"]
                )
            elif prof.role != cfg["role"]:
                prof.role = cfg["role"]
                prof.is_available = default_availability(cfg["role"])
                prof.vehicle_type = cfg["vehicle_type"]
                prof.save(update_fields=["role", "is_available", "vehicle_type", "updated_at"])

            token, _ = Token.objects.get_or_create(user=u)
            self.stdout.write(f"  → role={prof.role}, token={token.key}")

        self.stdout.write(self.style.SUCCESS("Demo users ready."))

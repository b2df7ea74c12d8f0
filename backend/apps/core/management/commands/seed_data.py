"""
Seed demo data for development.
Usage: python manage.py seed_data [--instructor-id 1] [--weeks 6]
"""

import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.catalog.models import TherapySeries
from apps.catalog.services import create_series
from apps.catalog.therapy_types import THERAPY_TYPES
from apps.core.principal import ROLE_INSTRUCTOR, ROLE_PATIENT, Principal
from apps.patients.assignment import assign_series
from apps.patients.models import Patient
from apps.patients.services import create_patient
from apps.therapy_sessions.models import TherapySession
from apps.therapy_sessions.recorder import record_session

PATIENTS = [
    {"name": "Alice Williams", "email": "alice@example.com", "age": 45, "condition": "Chronic lower back pain"},
    {"name": "Bob Martinez", "email": "bob@example.com", "age": 58, "condition": "Cervical tension"},
    {"name": "Carol Thompson", "email": "carol@example.com", "age": 39, "condition": "Work-related stress"},
    {"name": "David Kim", "email": "david@example.com", "age": 66, "condition": "Reduced hip mobility"},
]

COMMENTS = [
    "Felt looser after the twists, lower back less stiff.",
    "Hard to hold the last posture but breathing helped a lot.",
    "Good session, slept better afterwards.",
    "Some discomfort at the start, eased halfway through.",
]


class Command(BaseCommand):
    help = "Seed database with demo series, patients and session history"

    def add_arguments(self, parser):
        parser.add_argument("--instructor-id", type=int, default=1)
        parser.add_argument("--weeks", type=int, default=6)

    def handle(self, *args, **options):
        instructor = Principal(id=options["instructor_id"], role=ROLE_INSTRUCTOR)
        rng = random.Random(42)
        self.stdout.write("Seeding database...")

        series_list = []
        for type_id in ("back_pain", "neck_pain", "stress_relief", "flexibility"):
            therapy_type = THERAPY_TYPES[type_id]
            name = f"{therapy_type['name']} Foundations"
            existing = TherapySeries.objects.filter(
                instructor_id=instructor.id, name=name, is_active=True,
            ).first()
            series_list.append(existing or create_series(instructor, {
                "name": name,
                "description": therapy_type["description"],
                "therapy_type": type_id,
                "difficulty_level": therapy_type["difficulty"],
                "total_sessions": 10,
                "postures": [
                    {"id": p["id"], "name": p["name"], "duration": p["duration"]}
                    for p in therapy_type["postures"]
                ],
            }))
        self.stdout.write(f"  {len(series_list)} series")

        recorded = 0
        for index, data in enumerate(PATIENTS):
            if Patient.objects.filter(instructor_id=instructor.id, email=data["email"], is_active=True).exists():
                continue
            patient = create_patient(instructor, {**data, "user_id": instructor.id * 1000 + index + 1})
            assign_series(instructor, patient.id, series_list[index % len(series_list)].id)

            patient_principal = Principal(id=patient.user_id, role=ROLE_PATIENT)
            session_count = rng.randint(2, 8)
            for number in range(session_count):
                pain_before = rng.randint(4, 9)
                result = record_session(patient_principal, {
                    "pain_before": pain_before,
                    "pain_after": max(0, pain_before - rng.randint(-1, 4)),
                    "comments": rng.choice(COMMENTS),
                    "rating": rng.randint(3, 5),
                    "duration_minutes": rng.choice([20, 25, 30, 35]),
                    "postures_completed": rng.randint(2, 4),
                })
                # Spread history over the trend window
                days_ago = (session_count - number) * options["weeks"] * 7 // session_count
                TherapySession.objects.filter(pk=result.session.pk).update(
                    completed_at=timezone.now() - timedelta(days=days_ago),
                )
                recorded += 1
        self.stdout.write(f"  {recorded} sessions")

        self.stdout.write(self.style.SUCCESS("Done."))

"""Built-in demo data served to accounts listed in ``DEMO_USER_IDS``."""

from datetime import datetime, timezone

from .models.document import EmergencyContact, HealthProfile, MedicalDocument

DEMO_USER_ID = "test-user-id"

DEMO_DOCUMENTS = [
    MedicalDocument(
        id="doc1",
        user_id=DEMO_USER_ID,
        file_name="Annual Blood Test Results.pdf",
        tags=["Lab Report", "Annual Checkup", "blood test"],
        uploaded_at=datetime(2023, 10, 15, 9, 30, tzinfo=timezone.utc),
        summary="All results are within the normal range. Follow up in one year.",
        file_content="Patient: Alex Doe. Results: Hemoglobin 14 g/dL, Glucose 90 mg/dL. All clear.",
        file_type="application/pdf",
    ),
    MedicalDocument(
        id="doc2",
        user_id=DEMO_USER_ID,
        file_name="Dermatologist Prescription.jpg",
        tags=["Prescription", "Dermatology"],
        uploaded_at=datetime(2023, 9, 22, 14, 0, tzinfo=timezone.utc),
        summary="Prescription for topical cream for minor skin rash.",
        file_content="Prescription. Medication: Hydrocortisone Cream.",
        file_type="image/jpeg",
    ),
    MedicalDocument(
        id="doc3",
        user_id=DEMO_USER_ID,
        file_name="MRI Scan - Left Knee.dicom",
        tags=["Scan", "Orthopedics", "MRI"],
        uploaded_at=datetime(2023, 8, 5, 11, 45, tzinfo=timezone.utc),
        summary="MRI shows minor cartilage wear. Recommendation for physical therapy.",
        file_content="MRI scan. Findings: Minor cartilage wear in left knee.",
    ),
    MedicalDocument(
        id="doc4",
        user_id=DEMO_USER_ID,
        file_name="Dental Checkup Invoice.pdf",
        tags=["Invoice", "Dentist"],
        uploaded_at=datetime(2023, 7, 18, 16, 20, tzinfo=timezone.utc),
        summary="Invoice for routine dental cleaning and checkup.",
        file_content="Dental invoice. Service: Cleaning. Cost: $100.",
        file_type="application/pdf",
    ),
]

DEMO_PROFILE = HealthProfile(
    user_id=DEMO_USER_ID,
    full_name="Alex Doe",
    blood_group="O+",
    allergies=["Peanuts", "Pollen", "Aspirin"],
    emergency_contact=EmergencyContact(name="Jamie Doe", phone="123-456-7890"),
    updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
)

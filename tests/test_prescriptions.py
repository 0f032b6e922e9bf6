import unittest
from datetime import date, timedelta

import prescribing
from portal_case import ORIGIN, PortalTestCase, future_date


class EffectiveStatusTests(unittest.TestCase):
    def test_active_past_valid_until_is_expired(self):
        today = date(2030, 5, 1)
        self.assertEqual(prescribing.effective_status("active", "2030-04-30", today), "expired")
        self.assertEqual(prescribing.effective_status("active", "2030-05-01", today), "active")
        self.assertEqual(prescribing.effective_status("cancelled", "2030-01-01", today), "cancelled")


class PrescriptionTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.pat = self.patient(name="Pat Patient", email="pat@example.com")
        self.doc = self.doctor(name="Dana Doctor", email="dana@example.com")
        self.patient_id = self.user_id("pat@example.com")
        self.api_post(self.pat, "/api/appointments", {
            "doctor_id": self.user_id("dana@example.com"),
            "date": future_date(),
            "time": "11:00",
            "reason": "Review",
        })

    def test_recommended_uses_latest_risk_level(self):
        template = self.doc.get(f"/api/doctor/patients/{self.patient_id}/prescriptions/recommended").json()
        self.assertEqual(template["prescription"]["diagnosis"], "Moderate Cancer Risk - Preventive Care")

        self.api_post(self.pat, "/api/assessment", {
            "age": 70, "gender": "male", "family_history": True, "smoking_history": "current",
            "alcohol_consumption": "heavy", "physical_activity": "sedentary", "diet": "poor",
        })
        resp = self.api_post(self.doc, f"/api/doctor/patients/{self.patient_id}/prescriptions",
                             {"recommended": True})
        self.assertEqual(resp.status_code, 200)
        rx = resp.json()["prescription"]
        self.assertEqual(rx["diagnosis"], "High Cancer Risk - Preventive Care")
        self.assertEqual([m["name"] for m in rx["medications"]], ["Vitamin D3", "Omega-3 Fish Oil"])
        self.assertEqual(rx["medications"][0]["dosage"], "2000 IU")
        self.assertEqual(rx["status"], "active")
        issued = date.fromisoformat(rx["date_issued"])
        self.assertEqual(date.fromisoformat(rx["valid_until"]) - issued, timedelta(days=90))

    def test_issue_notifies_patient_with_prescription_id(self):
        resp = self.api_post(self.doc, f"/api/doctor/patients/{self.patient_id}/prescriptions", {
            "diagnosis": "Iron deficiency",
            "medications": [{"name": "Ferrous sulfate", "dosage": "325mg", "frequency": "Daily"}],
            "instructions": "Take with orange juice",
        })
        rx = resp.json()["prescription"]
        notes = [n for n in self.pat.get("/api/notifications").json()["notifications"]
                 if n["type"] == "prescription_received"]
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["related_id"], str(rx["id"]))

        listed = self.pat.get("/api/prescriptions").json()["prescriptions"]
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["medications"][0]["name"], "Ferrous sulfate")
        self.assertEqual(listed[0]["doctor_specialization"], "Oncology")
        self.assertIn("Iron deficiency", self.pat.get("/prescriptions").text)

    def test_custom_validation(self):
        url = f"/api/doctor/patients/{self.patient_id}/prescriptions"
        no_diag = self.api_post(self.doc, url, {"medications": [{"name": "A", "dosage": "1"}]})
        self.assertEqual(no_diag.json()["error"], "Diagnosis is required")
        no_meds = self.api_post(self.doc, url, {"diagnosis": "X", "medications": []})
        self.assertEqual(no_meds.json()["error"], "At least one medication is required")
        no_dose = self.api_post(self.doc, url, {"diagnosis": "X", "medications": [{"name": "A"}]})
        self.assertEqual(no_dose.json()["error"], "Each medication needs a name and dosage")
        self.assertEqual(self.count("SELECT COUNT(*) FROM prescriptions"), 0)

    def test_doctor_without_appointment_cannot_prescribe(self):
        other = self.doctor(name="Olga Other", email="olga@example.com")
        resp = self.api_post(other, f"/api/doctor/patients/{self.patient_id}/prescriptions",
                             {"recommended": True})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.count("SELECT COUNT(*) FROM prescriptions"), 0)

    def test_html_custom_prescription(self):
        resp = self.doc.post(
            f"/doctor/patients/{self.patient_id}/prescriptions",
            headers=ORIGIN,
            data={"kind": "custom", "diagnosis": "Nausea", "med_name": "Ondansetron",
                  "med_dosage": "4mg", "med_frequency": "As needed"},
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/doctor?success=Prescription+issued")
        listed = self.pat.get("/api/prescriptions").json()["prescriptions"]
        self.assertEqual(listed[0]["medications"][0]["frequency"], "As needed")

    def test_patients_cannot_prescribe(self):
        resp = self.api_post(self.pat, f"/api/doctor/patients/{self.patient_id}/prescriptions",
                             {"recommended": True})
        self.assertEqual(resp.status_code, 403)


if __name__ == "__main__":
    unittest.main()

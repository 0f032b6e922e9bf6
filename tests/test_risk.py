import unittest

import risk


def _answers(**overrides):
    base = {
        "age": 30,
        "gender": "female",
        "family_history": False,
        "smoking_history": "never",
        "alcohol_consumption": "none",
        "physical_activity": "active",
        "diet": "excellent",
        "symptoms": [],
        "medical_history": [],
    }
    base.update(overrides)
    return base


class RiskScoreTests(unittest.TestCase):
    def test_high_risk_example(self):
        result = risk.score(_answers(
            age=70,
            family_history=True,
            smoking_history="current",
            alcohol_consumption="heavy",
            physical_activity="sedentary",
            diet="poor",
            symptoms=["Fatigue", "Persistent cough"],
            medical_history=["Diabetes"],
        ))
        self.assertEqual(result, risk.RiskResult(17, "High", 75))

    def test_healthy_baseline_is_low(self):
        self.assertEqual(risk.score(_answers()), risk.RiskResult(0, "Low", 15))

    def test_level_boundaries(self):
        self.assertEqual(risk.level_for(3), ("Low", 15))
        self.assertEqual(risk.level_for(4), ("Low-Moderate", 25))
        self.assertEqual(risk.level_for(7), ("Low-Moderate", 25))
        self.assertEqual(risk.level_for(8), ("Moderate", 45))
        self.assertEqual(risk.level_for(11), ("Moderate", 45))
        self.assertEqual(risk.level_for(12), ("High", 75))

    def test_score_crosses_boundary_at_four(self):
        three = risk.score(_answers(age=40, smoking_history="former"))
        four = risk.score(_answers(age=40, smoking_history="former", diet="average"))
        self.assertEqual((three.risk_score, three.risk_level), (3, "Low"))
        self.assertEqual((four.risk_score, four.risk_level), (4, "Low-Moderate"))

    def test_age_bands(self):
        self.assertEqual(risk.score(_answers(age=35)).risk_score, 0)
        self.assertEqual(risk.score(_answers(age=36)).risk_score, 1)
        self.assertEqual(risk.score(_answers(age=51)).risk_score, 2)
        self.assertEqual(risk.score(_answers(age=65)).risk_score, 2)
        self.assertEqual(risk.score(_answers(age=66)).risk_score, 3)
        self.assertEqual(risk.score(_answers(age="70")).risk_score, 3)
        self.assertEqual(risk.score(_answers(age=70.5)).risk_score, 3)
        self.assertEqual(risk.score(_answers(age="70.5")).risk_score, 3)
        self.assertEqual(risk.score(_answers(age=" 51 years")).risk_score, 2)

    def test_fractional_age_never_scores_below_younger_age(self):
        ages = [66, 66.9, 70, 70.5]
        scores = [risk.score(_answers(age=a)).risk_score for a in ages]
        self.assertEqual(scores, [3, 3, 3, 3])

    def test_monotonic_in_each_factor(self):
        ladders = {
            "age": [20, 40, 55, 70],
            "smoking_history": ["never", "former", "current"],
            "alcohol_consumption": ["none", "light", "moderate", "heavy"],
            "physical_activity": ["active", "moderate", "light", "sedentary"],
            "diet": ["excellent", "good", "average", "poor"],
            "family_history": [False, True],
            "symptoms": [[], ["Fatigue"], ["Fatigue", "Unusual bleeding"]],
        }
        for key, values in ladders.items():
            scores = [risk.score(_answers(**{key: v})).risk_score for v in values]
            self.assertEqual(scores, sorted(scores), key)

    def test_malformed_answers_contribute_nothing(self):
        result = risk.score(_answers(
            age="not a number",
            smoking_history=5,
            alcohol_consumption=None,
            diet="",
            symptoms="Fatigue",
            medical_history=None,
        ))
        self.assertEqual(result, risk.RiskResult(0, "Low", 15))
        self.assertEqual(risk.score({}), risk.RiskResult(0, "Low", 15))
        self.assertEqual(risk.score(None).risk_level, "Low")

    def test_symptoms_counted_once_and_only_when_known(self):
        result = risk.score(_answers(symptoms=["Fatigue", "Fatigue", "Hiccups"]))
        self.assertEqual(result.risk_score, 1)

    def test_camel_case_keys_accepted(self):
        result = risk.score({
            "age": 30,
            "familyHistory": True,
            "smokingHistory": "current",
            "alcoholConsumption": "moderate",
            "physicalActivity": "light",
            "medicalHistory": ["Heart disease"],
        })
        self.assertEqual(result.risk_score, 2 + 3 + 1 + 1 + 1)

    def test_deterministic(self):
        a = _answers(age=60, diet="poor", symptoms=["Fatigue"])
        self.assertEqual(risk.score(a), risk.score(dict(a)))


if __name__ == "__main__":
    unittest.main()

"""
Patient-to-doctor matching package.

- symptoms: Canonical speciality symptom table and speciality inference
- scoring: The seven weighted match factors, urgency boost and reasons
"""

from pydantic import BaseModel


class Patient(BaseModel):
    id: str
    full_name: str = ""
    cnp: str = ""                       # national identifier, unique
    date_of_birth: str = ""             # ISO date, may be empty or malformed
    gender: str = ""
    blood_type: str = ""
    allergies: list[str] = []


class Doctor(BaseModel):
    id: str
    full_name: str = ""
    specialty: str = ""


class AssembledProfile(BaseModel):
    """Display-ready projection of a Patient.

    ``last_visit`` is the assembly date and ``conditions`` mirrors the
    allergy list. Both are placeholders kept for compatibility with the
    existing profile screen.
    """
    cnp: str
    name: str
    age: int = 0
    gender: str = ""
    last_visit: str
    conditions: list[str] = []


class UserDisplayName(BaseModel):
    user_type: str
    user_id: str
    display_name: str

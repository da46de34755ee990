from . import academic, auth, coursework, exams, messaging, parent, students, timetable

__all__ = [
    "academic",
    "auth",
    "coursework",
    "exams",
    "messaging",
    "parent",
    "students",
    "timetable",
]

"""Built-in categories, programs and starter flashcards.

These are the defaults the local store falls back to when a key is missing or
unreadable. Every accessor returns fresh model instances so callers can mutate
them freely.
"""

from __future__ import annotations

from typing import Any, Dict, List

from .models import Category, Flashcard, Program, UserStats

_CATEGORIES: List[Dict[str, str]] = [
    {"id": "medicine", "name": "Medicin", "icon": "stethoscope",
     "description": "Lär dig medicinska termer, procedurer och koncept"},
    {"id": "coding", "name": "Kodning", "icon": "code",
     "description": "Utforska programmeringsgrunder och avancerade koncept"},
    {"id": "math", "name": "Matematik", "icon": "plus",
     "description": "Från grundläggande aritmetik till avancerad kalkyl"},
    {"id": "languages", "name": "Språk", "icon": "languages",
     "description": "Lär dig nya språk och förbättra ditt ordförråd"},
    {"id": "science", "name": "Vetenskap", "icon": "flask",
     "description": "Utforska vetenskapliga principer inom olika områden"},
    {"id": "geography", "name": "Geografi", "icon": "globe",
     "description": "Utforska världen, länder, kulturer och landformer"},
    {"id": "vehicles", "name": "Fordon", "icon": "car",
     "description": "Lär dig om bilar, motorcyklar, båtar och flygplan"},
    {"id": "economics", "name": "Ekonomi", "icon": "banknote",
     "description": "Förstå grundläggande och avancerade ekonomiska koncept"},
    {"id": "history", "name": "Historia", "icon": "book",
     "description": "Utforska viktiga historiska händelser och perioder"},
]

_FLASHCARDS: List[Dict[str, Any]] = [
    {"id": "med-1", "category": "medicine", "difficulty": "beginner",
     "question": "Vad är det normala blodtrycket för en vuxen?", "answer": "120/80 mmHg"},
    {"id": "med-2", "category": "medicine", "difficulty": "beginner",
     "question": "Vilken är den vanligaste blodtypen i Sverige?", "answer": "A+"},
    {"id": "med-3", "category": "medicine", "difficulty": "beginner",
     "question": "Vad mäter EKG?", "answer": "Hjärtats elektriska aktivitet över tid"},
    {"id": "med-4", "category": "medicine", "difficulty": "intermediate",
     "question": "[Anatomi] Hur många ben har en vuxen människa?", "answer": "206"},
    {"id": "med-5", "category": "medicine", "difficulty": "intermediate",
     "question": "[Anatomi] Vilket är kroppens största organ?", "answer": "Huden"},
    {"id": "code-1", "category": "coding", "difficulty": "beginner",
     "question": "Vad står HTML för?", "answer": "Hypertext Markup Language"},
    {"id": "code-2", "category": "coding", "difficulty": "beginner",
     "question": "Vilken datatyp används för heltal i JavaScript?", "answer": "Number"},
    {"id": "code-3", "category": "coding", "difficulty": "beginner",
     "question": "Vad är skillnaden mellan '==' och '===' i JavaScript?",
     "answer": "'===' jämför både värde och typ utan typkonvertering"},
    {"id": "py-1", "category": "coding", "difficulty": "beginner",
     "question": "[Python] Vilket nyckelord definierar en funktion?", "answer": "def"},
    {"id": "py-2", "category": "coding", "difficulty": "beginner",
     "question": "[Python] Vilken datatyp är oföränderlig: list eller tuple?", "answer": "tuple"},
    {"id": "math-1", "category": "math", "difficulty": "beginner",
     "question": "Vad är Pi?",
     "answer": "Ungefär 3.14159, förhållandet mellan en cirkels omkrets och dess diameter"},
    {"id": "math-2", "category": "math", "difficulty": "intermediate",
     "question": "Vad är Pythagoras sats?",
     "answer": "I en rätvinklig triangel är kvadraten på hypotenusan lika med summan av "
               "kvadraterna på kateterna (a² + b² = c²)"},
    {"id": "math-3", "category": "math", "difficulty": "intermediate",
     "question": "[Statistik] Vad är medianen av 3, 7 och 9?", "answer": "7"},
    {"id": "math-4", "category": "math", "difficulty": "intermediate",
     "question": "[Statistik] Vad mäter standardavvikelsen?",
     "answer": "Hur mycket värdena sprider sig kring medelvärdet"},
    {"id": "lang-1", "category": "languages", "difficulty": "beginner",
     "question": 'Hur säger man "hej" på franska?', "answer": "Bonjour"},
    {"id": "lang-2", "category": "languages", "difficulty": "beginner",
     "question": 'Hur säger man "tack" på tyska?', "answer": "Danke"},
    {"id": "lang-3", "category": "languages", "difficulty": "beginner",
     "question": 'Hur säger man "god morgon" på spanska?', "answer": "Buenos días"},
    {"id": "sci-1", "category": "science", "difficulty": "beginner",
     "question": "Vad är den kemiska formeln för vatten?", "answer": "H₂O"},
    {"id": "sci-2", "category": "science", "difficulty": "advanced",
     "question": "Vad är teorin om relativitet?",
     "answer": "En teori formulerad av Albert Einstein som beskriver tid och rum som "
               "dynamiska kvantiteter"},
    {"id": "geo-1", "category": "geography", "difficulty": "beginner",
     "question": "Vilken är Sveriges huvudstad?", "answer": "Stockholm"},
    {"id": "geo-2", "category": "geography", "difficulty": "beginner",
     "question": "Vilka länder gränsar till Sverige?", "answer": "Norge och Finland"},
    {"id": "geo-3", "category": "geography", "difficulty": "beginner",
     "question": "Vilken är Sveriges största sjö?", "answer": "Vänern"},
    {"id": "veh-1", "category": "vehicles", "difficulty": "beginner",
     "question": "Vilket bilmärke tillverkar modellen Corolla?", "answer": "Toyota"},
    {"id": "veh-2", "category": "vehicles", "difficulty": "intermediate",
     "question": "När uppfanns bilen?",
     "answer": "Karl Benz byggde den första moderna bilen 1885"},
    {"id": "eco-1", "category": "economics", "difficulty": "beginner",
     "question": "Vad är inflation?",
     "answer": "En ökning av den allmänna prisnivån på varor och tjänster över tid"},
    {"id": "eco-2", "category": "economics", "difficulty": "beginner",
     "question": "Vad betyder BNP?",
     "answer": "Bruttonationalprodukt - det totala värdet av alla varor och tjänster som "
               "produceras i ett land under en viss period"},
    {"id": "hist-1", "category": "history", "difficulty": "beginner",
     "question": "När började första världskriget?", "answer": "1914"},
    {"id": "hist-2", "category": "history", "difficulty": "beginner",
     "question": "Vem var Sveriges första kvinnliga statsminister?",
     "answer": "Magdalena Andersson"},
]

_PROGRAMS: List[Dict[str, Any]] = [
    {"id": "med-basics", "name": "Medicinska grundbegrepp", "category": "medicine",
     "difficulty": "beginner", "flashcards": ["med-1", "med-2", "med-3"], "has_exam": True,
     "description": "Grundläggande medicinska termer och koncept för nybörjare"},
    {"id": "med-anatomy", "name": "Anatomi - grunder", "category": "medicine",
     "difficulty": "intermediate", "flashcards": ["med-4", "med-5"], "has_exam": True,
     "description": "Lär dig om kroppens struktur och organsystem"},
    {"id": "js-basics", "name": "JavaScript grunder", "category": "coding",
     "difficulty": "beginner", "flashcards": ["code-1", "code-2", "code-3"], "has_exam": True,
     "description": "Grundläggande JavaScript-koncept för nybörjare"},
    {"id": "python-basics", "name": "Python grundkurs", "category": "coding",
     "difficulty": "beginner", "flashcards": ["py-1", "py-2"], "has_exam": True,
     "description": "Kom igång med Python"},
    {"id": "math-algebra", "name": "Algebra grunder", "category": "math",
     "difficulty": "beginner", "flashcards": ["math-1", "math-2"], "has_exam": True,
     "description": "Grundläggande algebra och geometri"},
    {"id": "math-stats", "name": "Statistik grunder", "category": "math",
     "difficulty": "intermediate", "flashcards": ["math-3", "math-4"], "has_exam": True,
     "description": "Lägesmått och spridningsmått"},
    {"id": "swedish-basics", "name": "Fraser för nybörjare", "category": "languages",
     "difficulty": "beginner", "flashcards": ["lang-1", "lang-2", "lang-3"], "has_exam": False,
     "description": "Vanliga fraser på främmande språk"},
    {"id": "science-basics", "name": "Naturvetenskapliga grunder", "category": "science",
     "difficulty": "beginner", "flashcards": ["sci-1", "sci-2"], "has_exam": True,
     "description": "Grundläggande naturvetenskapliga begrepp"},
    {"id": "geography-basics", "name": "Geografiska grundbegrepp", "category": "geography",
     "difficulty": "beginner", "flashcards": ["geo-1", "geo-2", "geo-3"], "has_exam": True,
     "description": "Sveriges geografi"},
    {"id": "car-basics", "name": "Bilens grunder", "category": "vehicles",
     "difficulty": "beginner", "flashcards": ["veh-1", "veh-2"], "has_exam": False,
     "description": "Bilmärken och bilens historia"},
    {"id": "econ-basics", "name": "Ekonomiska grundbegrepp", "category": "economics",
     "difficulty": "beginner", "flashcards": ["eco-1", "eco-2"], "has_exam": True,
     "description": "Inflation, BNP och andra grundbegrepp"},
    {"id": "history-basics", "name": "Historiska milstolpar", "category": "history",
     "difficulty": "beginner", "flashcards": ["hist-1", "hist-2"], "has_exam": True,
     "description": "Viktiga händelser i modern historia"},
]


def initial_categories() -> List[Category]:
    return [Category.model_validate(entry) for entry in _CATEGORIES]


def initial_flashcards() -> List[Flashcard]:
    return [Flashcard.model_validate(entry) for entry in _FLASHCARDS]


def initial_programs() -> List[Program]:
    return [Program.model_validate(entry) for entry in _PROGRAMS]


def initial_user_stats() -> UserStats:
    return UserStats()


__all__ = [
    "initial_categories",
    "initial_flashcards",
    "initial_programs",
    "initial_user_stats",
]

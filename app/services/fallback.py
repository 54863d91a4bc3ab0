"""
Static content served when generation is unavailable
"""
from __future__ import annotations

import random
import uuid
from typing import Dict, List, Optional, Union

from app.models import Flashcard, Question, Subject
from app.services.picker import UsedContent, pick_unique


FALLBACK_FLASHCARDS: Dict[Subject, List[Flashcard]] = {
    Subject.MATH: [
        Flashcard(question="What is the derivative of ln(x^2 + 1) with respect to x?", answer="2x / (x^2 + 1)"),
        Flashcard(question="Solve the equation: log₂(x) + log₂(x - 3) = 3", answer="x = 5"),
        Flashcard(question="What is the limit of (1 - cos(x)) / x^2 as x approaches 0?", answer="1/2"),
    ],
    Subject.LANGUAGE_ARTS: [
        Flashcard(
            question="Explain the concept of dramatic irony and provide an example from a well-known work of literature.",
            answer=(
                "Dramatic irony occurs when the audience knows something that the characters do not. "
                "For example, in Shakespeare's 'Romeo and Juliet', the audience knows that Juliet is not dead, "
                "merely sleeping, while Romeo believes she is dead and kills himself."
            ),
        ),
        Flashcard(
            question="What is the difference between a metaphor and a simile, and how do they contribute to imagery in poetry?",
            answer=(
                "A metaphor directly states that one thing is another, while a simile compares two things using "
                "'like' or 'as'. Both create vivid imagery by drawing unexpected connections between different "
                "concepts or objects."
            ),
        ),
        Flashcard(
            question="Explain the concept of unreliable narrator and its effect on storytelling.",
            answer=(
                "An unreliable narrator is a narrator whose credibility is compromised. This creates ambiguity, "
                "forces readers to question the narrative, and can lead to surprising plot twists."
            ),
        ),
    ],
    Subject.SCIENCE: [
        Flashcard(
            question="Explain the concept of quantum entanglement and its implications for quantum computing.",
            answer=(
                "Quantum entanglement links particles so that they share physical properties regardless of "
                "distance. Quantum computers rely on it for operations that classical bits cannot perform."
            ),
        ),
        Flashcard(
            question="Describe the process of cellular respiration and its relationship to photosynthesis.",
            answer=(
                "Cellular respiration breaks down glucose to produce ATP, releasing CO2 and H2O. Photosynthesis "
                "uses CO2 and H2O to produce glucose and O2, so the two processes form a cycle."
            ),
        ),
        Flashcard(
            question="What is the significance of the Higgs boson in particle physics?",
            answer=(
                "The Higgs boson is associated with the Higgs field, which gives mass to other particles. "
                "Its discovery in 2012 confirmed the Standard Model."
            ),
        ),
    ],
    Subject.SOCIAL_STUDIES: [
        Flashcard(
            question="Compare and contrast the political philosophies of John Locke and Thomas Hobbes regarding the social contract theory.",
            answer=(
                "Hobbes argued for absolute monarchy because people are naturally selfish, while Locke advocated "
                "limited government and natural rights, influencing modern democracy."
            ),
        ),
        Flashcard(
            question="Analyze the long-term economic and social impacts of the Industrial Revolution.",
            answer=(
                "It brought urbanization, technological advancement and economic growth, but also poor working "
                "conditions, child labor and social inequality, leading to labor movements."
            ),
        ),
        Flashcard(
            question="Explain the concept of soft power in international relations and provide examples of its use in modern diplomacy.",
            answer=(
                "Soft power is influence through attraction and persuasion rather than coercion, such as "
                "cultural exchanges, foreign aid and public diplomacy."
            ),
        ),
    ],
}


# Templates only: ids are assigned when a question is served.
_FALLBACK_QUESTIONS: Dict[Subject, List[dict]] = {
    Subject.MATH: [
        {
            "question": "What is the result of integrating e^x with respect to x?",
            "options": ["x + C", "e^x + C", "ln(x) + C", "e^x"],
            "correct_answer": "e^x + C",
            "explanation": "The derivative of e^x is itself, so its integral is e^x plus a constant of integration.",
        },
        {
            "question": "If 3x - 7 = 2x + 5, what is the value of x?",
            "options": ["-2", "2", "12", "-12"],
            "correct_answer": "12",
            "explanation": "Subtract 2x from both sides and add 7: x = 12.",
        },
        {
            "question": "A rectangle has a perimeter of 36 and a length of 11. What is its area?",
            "options": ["77", "66", "88", "99"],
            "correct_answer": "77",
            "explanation": "2(11 + w) = 36 gives w = 7, so the area is 11 * 7 = 77.",
        },
    ],
    Subject.SCIENCE: [
        {
            "question": "Which organelle is the main site of ATP production in eukaryotic cells?",
            "options": ["Ribosome", "Mitochondrion", "Golgi apparatus", "Nucleus"],
            "correct_answer": "Mitochondrion",
            "explanation": "Oxidative phosphorylation in the mitochondria produces most of the cell's ATP.",
        },
        {
            "question": "An object of mass 4 kg accelerates at 3 m/s^2. What net force acts on it?",
            "options": ["0.75 N", "7 N", "12 N", "1.33 N"],
            "correct_answer": "12 N",
            "explanation": "Newton's second law: F = m * a = 4 kg * 3 m/s^2 = 12 N.",
        },
        {
            "question": "Which type of bond forms when electrons are shared between two atoms?",
            "options": ["Ionic", "Covalent", "Metallic", "Hydrogen"],
            "correct_answer": "Covalent",
            "explanation": "Covalent bonds involve shared electron pairs; ionic bonds involve transfer.",
        },
    ],
    Subject.LANGUAGE_ARTS: [
        {
            "question": "Which sentence uses a semicolon correctly?",
            "options": [
                "I wanted to go; but it rained.",
                "I wanted to go; it rained, however.",
                "I wanted; to go but it rained.",
                "I wanted to go it; rained.",
            ],
            "correct_answer": "I wanted to go; it rained, however.",
            "explanation": "A semicolon joins two independent clauses without a coordinating conjunction.",
        },
        {
            "question": "In an argumentative essay, what is the primary purpose of a counterclaim?",
            "options": [
                "To restate the thesis",
                "To acknowledge an opposing view before refuting it",
                "To summarize the evidence",
                "To introduce the topic",
            ],
            "correct_answer": "To acknowledge an opposing view before refuting it",
            "explanation": "Addressing a counterclaim strengthens an argument by showing it survives objections.",
        },
        {
            "question": "Which word best replaces 'ameliorate' in: 'The new policy will ameliorate the shortage'?",
            "options": ["Worsen", "Improve", "Ignore", "Measure"],
            "correct_answer": "Improve",
            "explanation": "To ameliorate is to make something bad better.",
        },
    ],
    Subject.SOCIAL_STUDIES: [
        {
            "question": "Which principle divides government power among legislative, executive and judicial branches?",
            "options": ["Federalism", "Separation of powers", "Popular sovereignty", "Judicial review"],
            "correct_answer": "Separation of powers",
            "explanation": "The Constitution assigns distinct powers to each of the three branches.",
        },
        {
            "question": "What economic term describes a general rise in prices over time?",
            "options": ["Deflation", "Recession", "Inflation", "Surplus"],
            "correct_answer": "Inflation",
            "explanation": "Inflation is a sustained increase in the general price level.",
        },
        {
            "question": "Which amendment to the U.S. Constitution abolished slavery?",
            "options": ["13th", "14th", "15th", "19th"],
            "correct_answer": "13th",
            "explanation": "The 13th Amendment, ratified in 1865, abolished slavery.",
        },
    ],
}


def _fallback_questions(subject: Subject) -> List[Question]:
    return [
        Question(id=f"fallback-{subject.name.lower()}-{i}", subject=subject, **template)
        for i, template in enumerate(_FALLBACK_QUESTIONS[subject])
    ]


def fallback(subject: Subject, kind: str) -> Union[List[Question], List[Flashcard]]:
    """Fixed pool of pre-authored content for a subject; kind is "question" or "flashcard"."""
    if kind == "flashcard":
        return list(FALLBACK_FLASHCARDS[subject])
    if kind == "question":
        return _fallback_questions(subject)
    raise ValueError(f"unknown content kind: {kind}")


class FallbackGenerator:
    """Serves the fallback bank through the generator interface.

    Used when no Gemini credential is configured. Every served question gets a
    fresh id so the supply pipeline accepts repeats once the pool cycles.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.used: Dict[Subject, UsedContent] = {}

    async def generate_question(self, subject: Subject, non_calculator: bool = False) -> Question:
        used = self.used.setdefault(subject, UsedContent())
        picked = pick_unique(fallback(subject, "question"), used, rng=self.rng)
        return picked.model_copy(
            update={
                "id": f"{picked.id}-{uuid.uuid4().hex[:6]}",
                "is_non_calculator": subject == Subject.MATH and non_calculator,
            }
        )

    async def generate_flashcards(self, subject: Subject, count: int) -> List[Flashcard]:
        return fallback(subject, "flashcard")

    async def aclose(self) -> None:
        return None

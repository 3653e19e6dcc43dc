"""Prompt text and reference lists for the Gemini oracle calls."""

from __future__ import annotations

import json
from collections.abc import Iterable

from archlens.entities.models import AuthorityRecord
from archlens.models import Page

ANALYSIS_PROMPT = (
    "Analyze this archival document page. "
    "1. Identify language(s). "
    "2. Identify production mode (print, photo, handwriting, typewriting). "
    "3. Check for Hebrew handwriting specifically."
)

TRANSCRIPTION_PROMPT = (
    "Transcribe this archival document exactly. "
    "Detect language, preserve layout, and score confidence 1-5."
)

TRANSLATION_INSTRUCTION = " Also provide an English translation of the transcription."

PRISON_LIST = [
    "Abu Kabir Lock-up", "Athlit Clearance Camp", "Athlit Detention Camp",
    "Bethlehem Detention Camp (Villa Salem)", "Boys' Reformatory School, Bethlehem",
    "Boys' Reformatory School, Rishon", "Boys' Reformatory School, Tulkarem",
    "Boys' Remand Home Jerusalem", "Carthaga Detention Camp, Sudan", "Central Prison Nablus",
    "Central Prison, Acre", "Central Prison, Jerusalem", "Cyprus detention camp",
    "Gilgil Detention Camp, Kenya", "Girls' Home", "Haifa Lock-up", "Jaffa Lock-up",
    "Jail Labour Co. No. 1 Nur Esh Shams", "Jail Labour Co. No. 2, Athlit", "Jenin Lock-up",
    "Jerusalem Lock-up", "Latrun Detention Camp", "Malka Flinka", "Mazra'a Detention Camp",
    "Nablus Prison", "Other Prisons", "Qulqilya Lock-up", "Rafah Detention Camp",
    "Ramleh Lock-up", "Sarafand Detention Camp", "Sarona Internment Camp",
    "Sembel Detention Camp, Asmara, Eritrea", "Tel Aviv Lock-up", "Tulkarem Lock-up",
    "Unknown", "Wilhelma-Hamîdije Internment Camp", "Women's Prison, Bethlehem",
]

SUBJECTS_LIST = [
    "Admission and Release", "Appeals and Petitions", "Correspondence with Families",
    "Deportation", "Discipline and Punishment", "Escapes", "Food and Rations",
    "Hunger Strikes", "Labour", "Legal Proceedings", "Medical Care", "Parole",
    "Prison Administration", "Prisoner Lists", "Religious Observance", "Security",
    "Staff and Personnel", "Visits",
]


def transcription_prompt(translate: bool) -> str:
    return TRANSCRIPTION_PROMPT + (TRANSLATION_INSTRUCTION if translate else "")


def clustering_input(pages: Iterable[Page], transcript_chars: int) -> list[dict]:
    """Per-page payload for the clustering prompt, transcriptions truncated."""
    return [
        {
            "id": p.id,
            "indexName": p.index_name,
            "language": p.language,
            "transcription": p.transcription[:transcript_chars],
        }
        for p in pages
    ]


def build_clustering_prompt(
    pages: Iterable[Page],
    vocabulary: Iterable[AuthorityRecord],
    transcript_chars: int = 15_000,
    vocabulary_chars: int = 40_000,
) -> str:
    """Clustering + entity extraction prompt over all transcribed pages."""
    vocab_summary = "|".join(a.name for a in vocabulary)[:vocabulary_chars]
    input_data = json.dumps(clustering_input(pages, transcript_chars), ensure_ascii=False)
    return f"""TASK 1: CLUSTERING
Group these archival pages into logical discrete documents (Clusters).
A cluster MUST represent exactly ONE physical document.
SPLIT ON DATE CHANGE: Different dates mean different clusters.

TASK 2: ENTITY EXTRACTION
For EACH cluster, extract all People, Organizations, and Roles mentioned in the text.
THIS IS MANDATORY. Even if a name is not in the vocabulary, extract it.

REFERENCE VOCABULARY (Check against this first): [{vocab_summary}]
PRISON LIST: {"|".join(PRISON_LIST)}
SUBJECTS: {"|".join(SUBJECTS_LIST)}

Input Data (Pages and Transcriptions):
{input_data}

Return a JSON array of Clusters. Ensure the 'entities' field is fully populated for every cluster.
"""

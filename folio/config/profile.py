"""
Folio - Profile Source
=======================
Structured profile of the site owner, consumed by the seeding tool.

``PROFILE``
    Résumé data: summary, work history, projects, use cases, contact.
    Each entry becomes one knowledge chunk.
``PROFILE_BLOCKS``
    Hand-authored first-person blocks, already written at chunk size and
    pre-tagged with ``type`` and ``topics``.

Edit this file and re-run ``python -m folio.scripts.seed_knowledge`` to
refresh the knowledge store.
"""

from typing import Any

PROFILE: dict[str, Any] = {
    "name": "Alex Rivera",
    "location": "Austin, TX",
    "summary": (
        "I am a product leader and hands-on builder who turns enterprise networking strategy into shipped products.\n\n"
        "Over the past two years I have designed, built and launched full-stack AI applications, taking ideas from "
        "prototype to production with modern CI/CD workflows.\n\n"
        "Working directly with multi-agent frameworks taught me where today's AI systems shine and where they break, "
        "which makes me a better partner for engineering teams and keeps product decisions grounded in real "
        "implementation constraints."
    ),
    "work": [
        {
            "company": "Northwind Networks",
            "title": "Director of Product, AI Platforms",
            "period": "March 2024 - Current",
            "description": (
                "Own the roadmap for the internal AI platform used by sales and support teams.\n"
                "Led the build of a retrieval-augmented assistant (FastAPI, React, pgvector) from pilot to general availability.\n"
                "Introduced evaluation pipelines for LLM workflows, cutting regression incidents by half."
            ),
        },
        {
            "company": "Northwind Networks",
            "title": "Senior Product Manager, Edge Solutions",
            "period": "June 2021 - March 2024",
            "description": (
                "Took a managed SD-WAN offering from concept to launch across three regions.\n"
                "Wrote the go-to-market plan and customer-facing collateral with marketing and sales.\n"
                "Earned analyst recognition as a market leader for managed edge services."
            ),
        },
        {
            "company": "Lakeside Telecom",
            "title": "Solutions Architect",
            "period": "August 2018 - June 2021",
            "description": (
                "Designed network and security solutions (SD-WAN, SASE) for enterprise customers.\n"
                "Served as trusted advisor to executive sponsors on multi-year network transformations.\n"
                "Ran technical workshops that translated architecture choices into business outcomes."
            ),
        },
    ],
    "projects": [
        {
            "title": "Folio",
            "description": "Personal portfolio site with an AI assistant that answers questions about my work, grounded in a curated knowledge base.",
            "technologies": ["Python", "FastAPI", "Gemini", "Supabase", "pgvector"],
            "url": "https://alexrivera.example.com",
        },
        {
            "title": "Tracklog",
            "description": "Self-hosted running log that imports GPS files and charts training load over time.",
            "technologies": ["Python", "PostgreSQL", "Grafana"],
            "url": None,
        },
    ],
    "use_cases": [
        {
            "title": "Unified Branch Connectivity",
            "description": "Prototyped and pitched a combined fiber and wireless branch offering in a two-day workshop, securing executive sponsorship for development.",
        },
    ],
    "contact": {
        "email": "alex@example.com",
        "linkedin": "https://www.linkedin.com/in/alexrivera",
        "github": "https://github.com/alexrivera-example",
    },
}

PROFILE_BLOCKS: list[dict[str, Any]] = [
    {
        "type": "values",
        "topics": ["values", "leadership"],
        "content": (
            "I believe the best products come from people who are close to the problem. I spend time with customers "
            "and engineers before I write a roadmap, and I try to make decisions in the open so the team knows why, "
            "not just what."
        ),
    },
    {
        "type": "personal",
        "topics": ["ai", "learning"],
        "content": (
            "I got into building AI applications by shipping small side projects every weekend. Most of what I know "
            "about retrieval, prompting and evaluation came from breaking my own prototypes and fixing them."
        ),
    },
    {
        "type": "preferences",
        "topics": ["work style", "collaboration"],
        "content": (
            "I do my best work in small teams with short feedback loops. I prefer written proposals over long "
            "meetings, and I like to demo something working early rather than polish a slide deck."
        ),
    },
]

"""Prompt templates for the draft generator and the secondary oracles."""

import json

from backend.enrichment.models.places import RecentActivity
from backend.enrichment.models.request import GenerationRequest

ITINERARY_SYSTEM_PROMPT = """You are an expert travel planner and budget analyst.
Respond with a single JSON object that strictly matches the schema in the user message.

Rules:
- Write every text field (destination, day labels, titles, notes, addresses, tips) in
  Simplified Chinese unless the traveller writes in another language.
- Give the commonly used local name and a concise, geocodable address for each activity:
  country/region, city, district, street and number or an authoritative landmark.
- Avoid vague locations such as "near the city centre"; when unsure, give the most likely
  formal address and say in the note that it needs manual verification.
- Estimate a realistic per-person cost for each activity as a non-negative number; use 0
  only when the activity is genuinely free.
- If an origin is given, include transport to and from it.
- budget_breakdown.total must equal the sum of its categories and of every cost_estimate.
- Do not wrap the JSON in Markdown and do not add commentary."""

ITINERARY_SCHEMA = """{
  "destination": string,
  "days": number,
  "party_size": number,
  "preference_tags": string[],
  "daily_plan": [
    {
      "day": string,
      "activities": [
        {
          "kind": "sight" | "food" | "transport" | "hotel" | "other",
          "title": string,
          "time_slot"?: string,
          "note"?: string,
          "address"?: string,
          "cost_estimate"?: number
        }
      ]
    }
  ],
  "budget_estimate"?: number,
  "budget_breakdown"?: {
    "total": number,
    "currency": string,
    "accommodation"?: number,
    "transport"?: number,
    "food"?: number,
    "activities"?: number,
    "other"?: number,
    "notes"?: string
  },
  "tips"?: string
}"""


def itinerary_user_prompt(request: GenerationRequest) -> str:
    """User message carrying the trip parameters."""
    trip_input = json.dumps(request.prompt_payload(), ensure_ascii=False, indent=2)
    return (
        "Plan a personalised trip with cost estimates for the traveller request below.\n"
        "Include an address for every activity when possible.\n"
        f"Return JSON only, following this schema:\n{ITINERARY_SCHEMA}\n\n"
        f"Trip input:\n{trip_input}"
    )


LOCATION_REFINEMENT_SCHEMA = """{
  "refined_name": string | null,
  "address_hint": string | null,
  "search_queries": string[],
  "nearby_landmarks": string[],
  "latitude": number | null,
  "longitude": number | null,
  "confidence": number | null,
  "reason": string
}"""

LOCATION_REFINEMENT_SYSTEM_PROMPT = f"""You help locate travel activities precisely.
Always respond with a strict JSON object matching this schema:
{LOCATION_REFINEMENT_SCHEMA}

Guidelines:
- Only provide latitude and longitude when you are confident they are correct; otherwise
  set both to null.
- Suggest up to three high-quality search queries that map APIs can resolve.
- List nearby landmarks, transit stations or mall names that identify the location.
- Keep the response concise and purely informational. No text outside the JSON."""


def location_refinement_user_prompt(
    *,
    destination: str,
    activity_title: str,
    kind: str | None = None,
    time_slot: str | None = None,
    existing_address: str | None = None,
    existing_note: str | None = None,
    day_label: str | None = None,
    recent_activities: list[RecentActivity] | None = None,
) -> str:
    """User message describing the activity to locate."""
    lines = [f"Destination: {destination}", f"Activity: {activity_title}"]

    if kind:
        lines.append(f"Kind: {kind}")
    if day_label:
        lines.append(f"Day: {day_label}")
    if time_slot:
        lines.append(f"Time slot: {time_slot}")
    if existing_address:
        lines.append(f"Current address: {existing_address}")
    if existing_note:
        lines.append(f"Note: {existing_note}")
    if recent_activities:
        formatted = "; ".join(
            f"{item.title} ({item.address})" if item.address else item.title
            for item in recent_activities
        )
        lines.append(f"Confirmed places earlier that day: {formatted}")

    lines.append("Fill in the most accurate location information for this activity.")
    return "\n".join(lines)


INTERNATIONALITY_SYSTEM_PROMPT = """You classify travel destinations.
Answer with a JSON object {"international": boolean} where true means the destination lies
outside mainland China, Hong Kong and Macau, and false means it lies inside.
No text outside the JSON."""


def internationality_user_prompt(destination: str) -> str:
    return f"Destination: {destination}"

"""OpenAI-powered generators for the five wizard steps."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from textwrap import dedent
from typing import Any, Dict, List, Sequence

from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from .config import LLMSettings
from .errors import FatalConfigurationError, GenerationServiceError, ResponseParseError
from .schemas import (
    GenerationKind,
    ListeningGuide,
    Persona,
    PilotOffer,
    ScalingStrategy,
    Strength,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptSpec:
    """Container describing how to call the LLM for a step."""

    system_prompt: str
    user_prompt: str
    schema_name: str
    schema: Dict[str, Any]
    # Key wrapping array results, since strict schemas need an object root.
    envelope_key: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1500


ClientCache = tuple[str, OpenAI]
_client_cache: ClientCache | None = None


def _get_client(api_key: str) -> OpenAI:
    """Return a cached OpenAI client for the given key."""

    global _client_cache
    if _client_cache and _client_cache[0] == api_key:
        return _client_cache[1]
    client = OpenAI(api_key=api_key)
    _client_cache = (api_key, client)
    return client


# ---------------------------------------------------------------------------
# Output schemas
# ---------------------------------------------------------------------------


def _string(description: str | None = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "string"}
    if description:
        schema["description"] = description
    return schema


def _string_list(description: str | None = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
    if description:
        schema["description"] = description
    return schema


def _object(properties: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Strict object: every property required, nothing else allowed."""

    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _array_of(item: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "array", "items": item}


STRENGTH_SCHEMA = _object(
    {
        "strength": _string("La habilidad o fortaleza principal."),
        "problemSolved": _string("El problema de negocio o de cliente específico que esta fortaleza aborda."),
        "example": _string("Un ejemplo concreto de esto en acción."),
    }
)

PERSONA_SCHEMA = _object(
    {
        "name": _string(),
        "role": _string(),
        "demographics": _object({"age": _string(), "location": _string()}),
        "professionalBackground": _string(),
        "goals": _string_list(),
        "challenges": _string_list(),
        "techStack": _string_list(),
        "digitalChannels": _string_list(),
    }
)

LISTENING_GUIDE_SCHEMA = _object(
    {
        "monitoringKeywords": _string_list("Palabras clave para rastrear en comunidades online."),
        "surveyTemplate": _object(
            {
                "title": _string(
                    "Un título atractivo para la encuesta (usando mayúscula solo en la primera palabra)."
                ),
                "questions": _string_list("3 preguntas concisas."),
            }
        ),
        "interviewQuestions": _string_list("5 preguntas abiertas para una entrevista de validación."),
    }
)

PILOT_OFFER_SCHEMA = _object(
    {
        "offerTitle": _string(
            "Un título atractivo para la oferta piloto (usando mayúscula solo en la primera palabra)."
        ),
        "outcome": _string("El resultado específico y tangible que obtendrá el cliente."),
        "pricingModel": _string("La sugerencia de precio de baja fricción."),
    }
)

SCALING_STRATEGY_SCHEMA = _object(
    {
        "seo": _object(
            {"blogPosts": _array_of(_object({"title": _string(), "keywords": _string()}))}
        ),
        "ads": _object({"platform": _string(), "audience": _string(), "copy": _string()}),
        "influencers": _object({"profile": _string(), "idea": _string()}),
    }
)

_STRENGTHS_ADAPTER = TypeAdapter(List[Strength])
_PERSONAS_ADAPTER = TypeAdapter(List[Persona])
_LISTENING_ADAPTER = TypeAdapter(ListeningGuide)
_PILOT_ADAPTER = TypeAdapter(List[PilotOffer])
_SCALING_ADAPTER = TypeAdapter(ScalingStrategy)


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = "Eres un estratega profesional y experto en marketing de clase mundial."


def build_strengths_prompt(profile_text: str) -> PromptSpec:
    # Format after dedenting so a multi-line profile keeps the template aligned.
    user_prompt = dedent(
        """
        Eres un estratega profesional y experto en marketing de clase mundial. Analiza el siguiente perfil profesional/CV. Identifica las 3-5 fortalezas clave. Para cada fortaleza, tradúcela a un problema específico y comercializable que resuelve para una empresa o individuo. Proporciona un ejemplo claro y convincente para cada una.

        Perfil Profesional:
        ---
        {profile_text}
        ---

        Tu respuesta debe ser un array JSON bajo la clave "strengths".
        """
    ).format(profile_text=profile_text)
    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        schema_name="strengths",
        schema=_object({"strengths": _array_of(STRENGTH_SCHEMA)}),
        envelope_key="strengths",
        temperature=0.7,
    )


def build_personas_prompt(strengths: Sequence[Strength]) -> PromptSpec:
    problems_text = ", ".join(item.problem_solved for item in strengths)
    user_prompt = dedent(
        f"""
        Basado en un profesional que es hábil resolviendo estos problemas: "{problems_text}", crea 2 buyer personas detallados y de ultra-nicho para clientes potenciales que necesitan desesperadamente estas soluciones.

        Para cada persona, debes proporcionar:
        1.  Un nombre plausible y un rol de trabajo específico.
        2.  Demografía: Un rango de edad realista y una ubicación de negocio probable (ej. "Centro tecnológico como Austin, TX" o "Empresas de logística en Valencia, España").
        3.  Antecedentes Profesionales: Un breve resumen de su trayectoria profesional.
        4.  Metas: 2-3 objetivos profesionales principales que intentan alcanzar.
        5.  Desafíos: 2-3 puntos de dolor o desafíos importantes que enfrentan y que se relacionan con los problemas que puedes resolver.
        6.  Stack Tecnológico: 3-5 tecnologías, software o herramientas que usan a diario.
        7.  Canales Digitales: 3-5 lugares específicos donde pasan el tiempo en línea (ej. 'r/SaaS' en Reddit, el podcast 'Nación Digital', influencers específicos de LinkedIn que siguen).

        Tu respuesta debe ser un array JSON de objetos de persona bajo la clave "personas".
        """
    )
    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        schema_name="personas",
        schema=_object({"personas": _array_of(PERSONA_SCHEMA)}),
        envelope_key="personas",
        temperature=0.8,
        max_tokens=2000,
    )


def build_listening_guide_prompt(persona: Persona) -> PromptSpec:
    challenges = ", ".join(persona.challenges)
    channels = ", ".join(persona.digital_channels)
    user_prompt = dedent(
        f"""
        Para el buyer persona detallado a continuación, genera una guía práctica de 'escucha activa'.

        Persona:
        - Nombre: {persona.name}
        - Rol: {persona.role}
        - Desafíos: {challenges}
        - Canales Digitales: {channels}

        Tu tarea es proporcionar:
        1.  Una lista de 5-10 palabras clave y frases 'long-tail' específicas para monitorear en sus canales digitales. Deben ser las palabras exactas que usarían para describir sus problemas.
        2.  Una plantilla para una mini-encuesta online de 3 preguntas para validar rápidamente la urgencia de su problema y sus soluciones actuales. IMPORTANTE: El título de la encuesta debe usar mayúscula solo en la primera palabra.
        3.  Una lista de 5 preguntas poderosas y abiertas para una breve llamada de descubrimiento o entrevista de 15 minutos para descubrir su disposición a pagar.

        Tu respuesta debe ser un único objeto JSON.
        """
    )
    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        schema_name="listening_guide",
        schema=LISTENING_GUIDE_SCHEMA,
    )


def build_pilot_offers_prompt(problem: str, persona: Persona) -> PromptSpec:
    challenges = ", ".join(persona.challenges)
    user_prompt = dedent(
        f"""
        Necesito crear una oferta de servicio piloto.

        El problema que resuelvo es: "{problem}"
        Mi cliente objetivo es: {persona.name}, un/a {persona.role}. Sus principales desafíos son: {challenges}.

        Genera 2 ofertas de servicio piloto distintas e irresistibles. Cada oferta debe ser:
        - Un compromiso corto, de una semana.
        - Enfocada en entregar un resultado específico y tangible que proporcione una victoria rápida relacionada con su problema principal.
        - Con un modelo de baja inversión para reducir la fricción (ej. una pequeña tarifa fija, o gratis a cambio de un testimonio detallado).
        - IMPORTANTE: El título de cada oferta debe usar mayúscula solo en la primera palabra.

        Tu respuesta debe ser un array JSON de 2 objetos de oferta bajo la clave "offers".
        """
    )
    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        schema_name="pilot_offers",
        schema=_object({"offers": _array_of(PILOT_OFFER_SCHEMA)}),
        envelope_key="offers",
    )


def build_scaling_strategy_prompt(problem: str, persona: Persona) -> PromptSpec:
    channels = ", ".join(persona.digital_channels)
    user_prompt = dedent(
        f"""
        Genera estrategias concretas para escalar la visibilidad de un servicio.

        El servicio resuelve este problema: "{problem}"
        El cliente objetivo es: {persona.name}, un/a {persona.role}. Pasa el tiempo en estos canales digitales: {channels}.

        Proporciona estrategias para:
        1.  Contenido SEO hiper-específico: Sugiere 2 títulos de artículos de blog con palabras clave 'long-tail' objetivo. IMPORTANTE: Cada título debe usar mayúscula solo en la primera palabra.
        2.  Campaña de Anuncios Segmentada: Sugiere una plataforma (ej. LinkedIn, Twitter), describe los criterios de la audiencia objetivo y escribe un texto de anuncio corto y potente.
        3.  Colaboración con Micro-influencers: Describe el perfil ideal del influencer (ej. "Un presentador de podcast centrado en...") y una idea de colaboración sencilla.

        Tu respuesta debe ser un único objeto JSON.
        """
    )
    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        schema_name="scaling_strategy",
        schema=SCALING_STRATEGY_SCHEMA,
    )


# ---------------------------------------------------------------------------
# Invocation and parsing
# ---------------------------------------------------------------------------


def _parse_structured_response(raw_text: str) -> Any:
    """Coerce the model output into JSON, tolerating markdown fences."""

    text = raw_text.strip()
    if text.startswith("```"):
        lines = [line.rstrip() for line in text.splitlines()]
        if len(lines) >= 2:
            lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Reply is not valid JSON: {exc}") from exc


def _unwrap(payload: Any, envelope_key: str | None) -> Any:
    if envelope_key and isinstance(payload, dict) and envelope_key in payload:
        return payload[envelope_key]
    return payload


def _validate(adapter: TypeAdapter, payload: Any, schema_name: str) -> Any:
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise ResponseParseError(f"Reply does not match the {schema_name} shape: {exc}") from exc


class GenerationClient:
    """Issue one structured generation call per wizard step."""

    def __init__(self, settings: LLMSettings, client: OpenAI | None = None) -> None:
        if client is None:
            if not settings.openai_api_key:
                raise FatalConfigurationError("OPENAI_API_KEY environment variable not set")
            client = _get_client(settings.openai_api_key)
        self._client = client
        self._model = settings.model

    def _invoke(self, spec: PromptSpec) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": spec.system_prompt.strip()},
                    {"role": "user", "content": spec.user_prompt.strip()},
                ],
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": spec.schema_name,
                        "schema": spec.schema,
                        "strict": True,
                    },
                },
            )
        except OpenAIError as exc:
            logger.warning("Generation call for %s failed: %s", spec.schema_name, exc)
            raise GenerationServiceError(str(exc)) from exc

        message = response.choices[0].message.content if response.choices else None
        if not message:
            raise ResponseParseError(f"Empty reply for {spec.schema_name}")
        logger.debug("Raw reply for %s:\n%s", spec.schema_name, message)
        return message

    def _run(self, spec: PromptSpec, adapter: TypeAdapter) -> Any:
        logger.info("Requesting %s generation with %s", spec.schema_name, self._model)
        raw = self._invoke(spec)
        try:
            payload = _unwrap(_parse_structured_response(raw), spec.envelope_key)
            return _validate(adapter, payload, spec.schema_name)
        except ResponseParseError:
            logger.exception("Failed to parse %s reply", spec.schema_name)
            raise

    def generate_strengths(self, profile_text: str) -> List[Strength]:
        return self._run(build_strengths_prompt(profile_text), _STRENGTHS_ADAPTER)

    def generate_personas(self, strengths: Sequence[Strength]) -> List[Persona]:
        return self._run(build_personas_prompt(strengths), _PERSONAS_ADAPTER)

    def generate_listening_guide(self, persona: Persona) -> ListeningGuide:
        return self._run(build_listening_guide_prompt(persona), _LISTENING_ADAPTER)

    def generate_pilot_offers(self, problem: str, persona: Persona) -> List[PilotOffer]:
        return self._run(build_pilot_offers_prompt(problem, persona), _PILOT_ADAPTER)

    def generate_scaling_strategy(self, problem: str, persona: Persona) -> ScalingStrategy:
        return self._run(build_scaling_strategy_prompt(problem, persona), _SCALING_ADAPTER)

    def generate(self, kind: GenerationKind, **kwargs: Any) -> Any:
        """Dispatch to the generator for *kind* with its keyword inputs."""

        generators = {
            GenerationKind.STRENGTHS: self.generate_strengths,
            GenerationKind.PERSONAS: self.generate_personas,
            GenerationKind.LISTENING: self.generate_listening_guide,
            GenerationKind.PILOT: self.generate_pilot_offers,
            GenerationKind.SCALING: self.generate_scaling_strategy,
        }
        return generators[kind](**kwargs)

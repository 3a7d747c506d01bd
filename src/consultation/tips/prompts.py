"""Prompt templates for tip generation, per language."""

from src.consultation.models import Participant, ParticipantRole

ROLE_LABELS: dict[str, dict[ParticipantRole, str]] = {
    "en": {
        ParticipantRole.DOCTOR: "Doctor",
        ParticipantRole.PATIENT: "Patient",
        ParticipantRole.AGENT: "Assistant",
    },
    "pt": {
        ParticipantRole.DOCTOR: "Médico",
        ParticipantRole.PATIENT: "Paciente",
        ParticipantRole.AGENT: "Assistente",
    },
}

SYSTEM_PROMPTS = {
    "en": (
        "You are an intelligent assistant in a medical consultation.\n\n"
        "Participants:\n{participants}\n\n"
        "Your goal is to provide contextual, relevant tips to help each "
        "participant during the consultation."
    ),
    "pt": (
        "Você é um assistente inteligente em uma consulta médica.\n\n"
        "Participantes:\n{participants}\n\n"
        "Seu objetivo é fornecer dicas contextuais e relevantes para auxiliar "
        "cada participante durante a consulta."
    ),
}

PROFESSIONAL_PROMPTS = {
    "en": """{system_prompt}

You are assisting a doctor during a consultation. Based on the recent conversation, give the doctor an objective, concise tip.

Conversation history:
{history}

Give a practical, relevant tip for the doctor in at most 2 sentences. Focus on:
- Important diagnostic questions
- Tests that may be needed
- Points of clinical attention
- Therapeutic guidance

Tip:""",
    "pt": """{system_prompt}

Você está auxiliando um médico durante uma consulta. Com base na conversa recente, forneça uma dica objetiva e concisa para o médico.

Histórico da conversa:
{history}

Forneça uma dica prática e relevante para o médico em no máximo 2 frases. Foque em:
- Questões diagnósticas importantes
- Exames que podem ser necessários
- Pontos de atenção clínica
- Orientações terapêuticas

Dica:""",
}

CLIENT_PROMPTS = {
    "en": """{system_prompt}

You are assisting a patient during a medical consultation. Based on the recent conversation, give the patient a helpful tip.

Conversation history:
{history}

Give a tip in at most 2 sentences. Focus on:
- Important questions the patient can ask the doctor
- Relevant information the patient should mention
- Clarifications about what is being discussed

Tip:""",
    "pt": """{system_prompt}

Você está auxiliando um paciente durante uma consulta médica. Com base na conversa recente, forneça uma dica útil para o paciente.

Histórico da conversa:
{history}

Forneça uma dica em no máximo 2 frases. Foque em:
- Perguntas importantes que o paciente pode fazer ao médico
- Informações relevantes que o paciente deve mencionar
- Esclarecimentos sobre o que está sendo discutido

Dica:""",
}


def build_system_prompt(participants: list[Participant] | tuple[Participant, ...], language: str = "en") -> str:
    """Render the session system prompt listing every participant."""
    participant_lines = "\n".join(f"- {p.name} ({p.role.value})" for p in participants)
    return SYSTEM_PROMPTS[language].format(participants=participant_lines)

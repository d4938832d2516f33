"""User-facing reply texts (German, like the rest of the bot's voice)."""

from chat_scheduler.models.session import Stage

ASK_DATE = "Klar! Für wann möchten Sie den Termin vereinbaren? (Format: TT.MM.JJJJ, z.B. 08.11.2025)"
ASK_TIME = "Danke! Um wie viel Uhr soll der Termin stattfinden? (z.B. 10:00)"
ASK_DURATION = "Wie lange soll der Termin dauern (in Minuten)?"
ASK_EMAIL = "Super! An welche E-Mail-Adresse soll die Einladung gehen?"

RETRY_DATE = "Ich konnte kein gültiges Datum erkennen. Bitte im Format TT.MM.JJJJ angeben, z.B. 08.11.2025."
RETRY_TIME = "Ich konnte keine Uhrzeit erkennen. Bitte z.B. 10:00 oder 14:30 angeben."
RETRY_DURATION = "Bitte geben Sie die Dauer als Zahl in Minuten an, z.B. 30."
RETRY_EMAIL = "Das sieht nicht nach einer gültigen E-Mail-Adresse aus. Bitte noch einmal versuchen."

PROMPT_FOR_STAGE = {
    Stage.AWAITING_DATE: ASK_DATE,
    Stage.AWAITING_TIME: ASK_TIME,
    Stage.AWAITING_DURATION: ASK_DURATION,
    Stage.AWAITING_EMAIL: ASK_EMAIL,
}

MISSING_FIELD = "❌ Es fehlen noch Angaben für den Termin."
SLOT_TAKEN = "❌ Zu diesem Zeitpunkt ist leider schon ein Termin belegt. Bitte nennen Sie eine andere Uhrzeit."
BOOKING_FAILED = "❌ Es gab einen Fehler beim Erstellen des Termins. Bitte senden Sie Ihre E-Mail-Adresse erneut."
NOT_CONNECTED = "❌ Bot ist nicht verbunden. Bitte zuerst Google Setup durchführen."
ALREADY_BOOKED = "✅ Der Termin wurde bereits vereinbart. Möchten Sie noch etwas besprechen?"
COMPLETION_FALLBACK = "Entschuldigung, ich konnte gerade nicht antworten. Schreiben Sie 'Termin', um direkt einen Termin zu vereinbaren."
GENERIC_ERROR = "❌ Es gab einen Fehler bei der Verarbeitung Ihrer Anfrage."

EMAIL_SUBJECT = "Ihr Termin am {date} um {time} Uhr"


def confirmation(date: str, time: str, duration: int, email: str, join_link: str) -> str:
    return (
        f"✅ Termin gebucht am {date} um {time} Uhr ({duration} Minuten).\n"
        f"Eine Einladung wurde an {email} gesendet.\n"
        f"Meeting-Link: {join_link}"
    )


def email_body(bot_name: str, date: str, time: str, duration: int, join_link: str) -> str:
    return (
        "Hallo,\n\n"
        f"Ihr Termin am {date} um {time} Uhr ({duration} Minuten) ist bestätigt.\n"
        f"Meeting-Link: {join_link}\n\n"
        f"Viele Grüße\n{bot_name}"
    )


def lead_greeting(name: str, bot_name: str) -> str:
    greeting = f"Hallo {name}!" if name else "Hallo!"
    return (
        f"{greeting} Hier ist {bot_name}, dein persönlicher KI-Assistent. "
        "Danke für dein Interesse! Antworte einfach, um deine Beratung zu starten."
    )

"""
Voice bank definitions for Gemini prebuilt TTS voices
"""
VOICE_BANKS = {
    "female": {
        "label": "Female voices",
        "default": "Kore",
        "voices": [
            {"name": "Achernar", "style": "Soft"},
            {"name": "Aoede", "style": "Breezy"},
            {"name": "Autonoe", "style": "Bright"},
            {"name": "Callirrhoe", "style": "Easy-going"},
            {"name": "Despina", "style": "Smooth"},
            {"name": "Erinome", "style": "Clear"},
            {"name": "Gacrux", "style": "Mature"},
            {"name": "Kore", "style": "Firm"},
            {"name": "Laomedeia", "style": "Upbeat"},
            {"name": "Leda", "style": "Youthful"},
            {"name": "Sulafat", "style": "Warm"},
            {"name": "Vindemiatrix", "style": "Gentle"},
            {"name": "Zephyr", "style": "Bright"},
        ],
    },
    "male": {
        "label": "Male voices",
        "default": "Puck",
        "voices": [
            {"name": "Achird", "style": "Friendly"},
            {"name": "Algenib", "style": "Gravelly"},
            {"name": "Algieba", "style": "Smooth"},
            {"name": "Alnilam", "style": "Firm"},
            {"name": "Charon", "style": "Informative"},
            {"name": "Enceladus", "style": "Breathy"},
            {"name": "Fenrir", "style": "Excitable"},
            {"name": "Iapetus", "style": "Clear"},
            {"name": "Orus", "style": "Firm"},
            {"name": "Pulcherrima", "style": "Forward"},
            {"name": "Puck", "style": "Upbeat"},
            {"name": "Rasalgethi", "style": "Informative"},
            {"name": "Sadachbia", "style": "Lively"},
            {"name": "Sadaltager", "style": "Knowledgeable"},
            {"name": "Schedar", "style": "Even"},
            {"name": "Umbriel", "style": "Easy-going"},
            {"name": "Zubenelgenubi", "style": "Casual"},
        ],
    },
}

KNOWN_VOICES = tuple(
    voice["name"]
    for bank in VOICE_BANKS.values()
    for voice in bank["voices"]
)


def is_known_voice(voice) -> bool:
    return isinstance(voice, str) and voice in KNOWN_VOICES


def list_voices() -> list[dict]:
    """API/CLI 용 평탄화된 음성 목록"""
    voices = []
    for group, bank in VOICE_BANKS.items():
        for voice in bank["voices"]:
            voices.append({
                "id": voice["name"],
                "group": group,
                "style": voice["style"],
                "default": voice["name"] == bank["default"],
            })
    return voices

"""Supported language codes and their native display names."""

from __future__ import annotations

from enum import Enum

UNKNOWN_LANGUAGE_NAME = "未知"


class LanguageCode(str, Enum):
    """Standard language codes used by subtitle tasks."""

    SIMPLIFIED_CHINESE = "zh_cn"
    TRADITIONAL_CHINESE = "zh_tw"
    ENGLISH = "en"
    JAPANESE = "ja"
    INDONESIAN = "id"
    MALAYSIAN = "ms"
    THAI = "th"
    VIETNAMESE = "vi"
    FILIPINO = "fil"
    KOREAN = "ko"
    ARABIC = "ar"
    FRENCH = "fr"
    GERMAN = "de"
    ITALIAN = "it"
    RUSSIAN = "ru"
    PORTUGUESE = "pt"
    SPANISH = "es"
    HINDI = "hi"
    BENGALI = "bn"
    HEBREW = "he"
    PERSIAN = "fa"
    AFRIKAANS = "af"
    SWEDISH = "sv"
    FINNISH = "fi"
    DANISH = "da"
    NORWEGIAN = "no"
    DUTCH = "nl"
    GREEK = "el"
    UKRAINIAN = "uk"
    HUNGARIAN = "hu"
    POLISH = "pl"
    TURKISH = "tr"
    SERBIAN = "sr"
    CROATIAN = "hr"
    CZECH = "cs"
    PINYIN = "pinyin"
    SWAHILI = "sw"
    YORUBA = "yo"
    HAUSA = "ha"
    AMHARIC = "am"
    OROMO = "om"
    ICELANDIC = "is"
    LUXEMBOURGISH = "lb"
    CATALAN = "ca"
    ROMANIAN = "ro"
    MOLDOVAN = "ro"  # alias of ROMANIAN
    SLOVAK = "sk"
    BOSNIAN = "bs"
    MACEDONIAN = "mk"
    SLOVENIAN = "sl"
    BULGARIAN = "bg"
    LATVIAN = "lv"
    LITHUANIAN = "lt"
    ESTONIAN = "et"
    MALTESE = "mt"
    ALBANIAN = "sq"
    PUNJABI = "pa"
    JAVANESE = "jv"
    TAMIL = "ta"
    URDU = "ur"
    MARATHI = "mr"
    TELUGU = "te"
    PASHTO = "ps"
    LINGALA = "ln"
    MALAYALAM = "ml"
    HAKKA_CHIN = "cnh"
    UZBEK = "uz"
    KANNADA = "kn"
    ODIA = "or"
    IGBO = "ig"
    ZULU = "zu"
    XHOSA = "xh"
    KHMER = "km"
    LAO = "lo"
    GEORGIAN = "ka"
    ARMENIAN = "hy"
    TAJIK = "tg"
    TURKMEN = "tk"
    KAZAKH = "kk"
    KYRGYZ = "ky"
    MONGOLIAN = "mn"
    SCOTTISH_GAELIC = "gd"
    IRISH = "ga"
    WELSH = "cy"
    BASHKIR = "ba"
    CEBUANO = "ceb"
    ILOCANO = "ilo"
    TATAR = "tt"
    PALI = "pi"
    KINYARWANDA = "rw"
    BELARUSIAN = "be"
    MALAGASY = "mg"
    TUVALUAN = "tvl"
    MARSHALLESE = "mh"
    CHAMORRO = "ch"
    SAMOAN = "sm"
    TONGAN = "to"
    MAORI = "mi"
    TOK_PISIN = "tpi"
    CHUVASH = "cv"
    KOMI = "kv"
    MANX = "gv"


_L = LanguageCode

LANGUAGE_NAMES: dict[str, str] = {
    _L.SIMPLIFIED_CHINESE.value: "简体中文",
    _L.TRADITIONAL_CHINESE.value: "繁體中文",
    _L.ENGLISH.value: "English",
    _L.JAPANESE.value: "日本語",
    _L.INDONESIAN.value: "bahasa Indonesia",
    _L.ARABIC.value: "اَلْعَرَبِيَّةُ",
    _L.FILIPINO.value: "Wikang Filipino",
    _L.FRENCH.value: "Français",
    _L.GERMAN.value: "Deutsch",
    _L.ITALIAN.value: "Italiano",
    _L.KOREAN.value: "한국어",
    _L.MALAYSIAN.value: "Bahasa Melayu",
    _L.PORTUGUESE.value: "Português",
    _L.RUSSIAN.value: "Русский язык",
    _L.SPANISH.value: "Español",
    _L.THAI.value: "ภาษาไทย",
    _L.VIETNAMESE.value: "Tiếng Việt",
    _L.HINDI.value: "हिन्दी",
    _L.BENGALI.value: "বাংলা",
    _L.HEBREW.value: "עברית",
    _L.PERSIAN.value: "فارسی",
    _L.AFRIKAANS.value: "Afrikaans",
    _L.SWEDISH.value: "Svenska",
    _L.FINNISH.value: "Suomi",
    _L.DANISH.value: "Dansk",
    _L.NORWEGIAN.value: "Norsk",
    _L.DUTCH.value: "Nederlands",
    _L.GREEK.value: "Νέα Ελληνικά;",
    _L.UKRAINIAN.value: "Українська",
    _L.HUNGARIAN.value: "Magyar nyelv",
    _L.POLISH.value: "Polski",
    _L.TURKISH.value: "Türkçe",
    _L.SERBIAN.value: "Српски",
    _L.CROATIAN.value: "Hrvatski",
    _L.CZECH.value: "čeština",
    _L.PINYIN.value: "Pin yin",
    _L.SWAHILI.value: "Kiswahili",
    _L.YORUBA.value: "èdè Yorùbá",
    _L.HAUSA.value: "هَرْشٜن هَوْس",
    _L.AMHARIC.value: "አማርኛ",
    _L.OROMO.value: "afaan Oromoo",
    _L.ICELANDIC.value: "Íslenska",
    _L.LUXEMBOURGISH.value: "Lëtzebuergesch",
    _L.CATALAN.value: "Català",
    _L.ROMANIAN.value: "Românã",
    _L.SLOVAK.value: "Slovenčina",
    _L.BOSNIAN.value: "Босански",
    _L.MACEDONIAN.value: "Македонски",
    _L.SLOVENIAN.value: "Slovenščina",
    _L.BULGARIAN.value: "Български",
    _L.LATVIAN.value: "Latviski",
    _L.LITHUANIAN.value: "Lietuviškai",
    _L.ESTONIAN.value: "Eesti keel",
    _L.MALTESE.value: "Malti",
    _L.ALBANIAN.value: "Shqip",
    _L.PUNJABI.value: "ਪੰਜਾਬੀ",
    _L.JAVANESE.value: "ꦧꦱꦗꦮ",
    _L.TAMIL.value: "தமிழ்",
    _L.URDU.value: "اردو",
    _L.MARATHI.value: "मराठी",
    _L.TELUGU.value: "తెలుగు",
    _L.PASHTO.value: "پښتو",
    _L.LINGALA.value: "Lingála",
    _L.MALAYALAM.value: "മലയാളം",
    _L.HAKKA_CHIN.value: "客家话",
    _L.UZBEK.value: "Oʻzbekcha",
    _L.KANNADA.value: "ಕನ್ನಡ",
    _L.ODIA.value: "ଓଡ଼ିଆ",
    _L.IGBO.value: "Igbo",
    _L.ZULU.value: "isiZulu",
    _L.XHOSA.value: "isiXhosa",
    _L.KHMER.value: "ភាសាខ្មែរ",
    _L.LAO.value: "ພາສາລາວ",
    _L.GEORGIAN.value: "ქართული",
    _L.ARMENIAN.value: "Հայերեն",
    _L.TAJIK.value: "Тоҷикӣ",
    _L.TURKMEN.value: "Türkmençe",
    _L.KAZAKH.value: "Қазақша",
    _L.KYRGYZ.value: "Кыргызча",
    _L.MONGOLIAN.value: "Монгол хэл",
    _L.SCOTTISH_GAELIC.value: "Gàidhlig",
    _L.IRISH.value: "Gaeilge",
    _L.WELSH.value: "Cymraeg",
    _L.BASHKIR.value: "Башҡортса",
    _L.CEBUANO.value: "Bisaya",
    _L.ILOCANO.value: "Ilokano",
    _L.TATAR.value: "Татарча",
    _L.PALI.value: "पाऴि",
    _L.KINYARWANDA.value: "Ikinyarwanda",
    _L.BELARUSIAN.value: "Беларуская",
    _L.MALAGASY.value: "Malagasy",
    _L.TUVALUAN.value: "Te Ggana Tuuvalu",
    _L.MARSHALLESE.value: "Kajin M̧ajeļ",
    _L.CHAMORRO.value: "Chamoru",
    _L.SAMOAN.value: "Gagana Samoa",
    _L.TONGAN.value: "Lea faka-Tonga",
    _L.MAORI.value: "Māori",
    _L.TOK_PISIN.value: "Tok Pisin",
    _L.CHUVASH.value: "Чӑвашла",
    _L.KOMI.value: "Коми кыв",
    _L.MANX.value: "Gaelg",
}


def get_standard_language_name(code: str | LanguageCode) -> str:
    """Return the native name of a language code, or "未知" when unknown."""
    key = code.value if isinstance(code, LanguageCode) else code
    return LANGUAGE_NAMES.get(key, UNKNOWN_LANGUAGE_NAME)
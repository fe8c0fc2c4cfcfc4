"""
Localized chat text.

Templates use positional placeholders ({0}, {1}, ...). A missing key is a
programming error and raises KeyError; an unsupported language falls back
to English.
"""

from typing import Dict, Union
import logging

from app.models.session import Language

logger = logging.getLogger(__name__)

MENU_EN = (
    "Welcome to Traffic Buddy! 🚦\n"
    "Reply with a number:\n"
    "1. Report a traffic violation\n"
    "2. Report traffic congestion\n"
    "3. Report an irregularity\n"
    "4. Report road damage\n"
    "5. Report illegal parking\n"
    "6. Report a traffic signal issue\n"
    "7. Share a suggestion\n"
    "8. Join the Traffic Buddy team\n\n"
    "Type 'menu' at any time to come back here, or 'reset' to start over."
)

MENU_MR = (
    "ट्रॅफिक बडी मध्ये आपले स्वागत आहे! 🚦\n"
    "क्रमांक पाठवा:\n"
    "1. वाहतूक नियमभंगाची तक्रार\n"
    "2. वाहतूक कोंडीची तक्रार\n"
    "3. अनियमिततेची तक्रार\n"
    "4. खराब रस्त्याची तक्रार\n"
    "5. बेकायदेशीर पार्किंगची तक्रार\n"
    "6. सिग्नल समस्येची तक्रार\n"
    "7. सूचना पाठवा\n"
    "8. ट्रॅफिक बडी टीममध्ये सामील व्हा\n\n"
    "मेनूसाठी 'menu' आणि पुन्हा सुरू करण्यासाठी 'reset' टाइप करा."
)

TEXTS: Dict[str, Dict[str, str]] = {
    "LANGUAGE_PROMPT": {
        "en": "Please choose your language / कृपया आपली भाषा निवडा:\n1. English\n2. मराठी",
        "mr": "कृपया आपली भाषा निवडा / Please choose your language:\n1. English\n2. मराठी",
    },
    "WELCOME_MESSAGE": {"en": MENU_EN, "mr": MENU_MR},
    "NAME_REQUEST": {
        "en": "Please tell us your name.",
        "mr": "कृपया आपले नाव सांगा.",
    },
    "NAME_CONFIRMATION": {
        "en": "Thank you, {0}!",
        "mr": "धन्यवाद, {0}!",
    },
    "CAMERA_INSTRUCTIONS": {
        "en": "📸 Open this link to capture a photo and your location for the {0} report:\n{1}\n\nThe link works once and expires in {2} minutes.",
        "mr": "📸 {0} तक्रारीसाठी फोटो व स्थान पाठवण्यासाठी ही लिंक उघडा:\n{1}\n\nही लिंक एकदाच वापरता येते आणि {2} मिनिटांत कालबाह्य होते.",
    },
    "TECHNICAL_DIFFICULTY": {
        "en": "We're experiencing technical difficulties. Please try again later.",
        "mr": "तांत्रिक अडचण आली आहे. कृपया नंतर पुन्हा प्रयत्न करा.",
    },
    "JOIN_FORM_LINK": {
        "en": "🙌 Thank you for your interest! Fill in the application form here:\n{0}",
        "mr": "🙌 आपल्या रुचीबद्दल धन्यवाद! अर्ज येथे भरा:\n{0}",
    },
    "JOIN_TEXT_PROMPT": {
        "en": "Please send your details in this format:\nName: ...\nEmail: ...\nPhone: ...\nLocation: ...",
        "mr": "कृपया आपली माहिती या स्वरूपात पाठवा:\nName: ...\nEmail: ...\nPhone: ...\nLocation: ...",
    },
    "JOIN_RESPONSE": {
        "en": "Thank you for your interest in joining Traffic Buddy! Our team will contact you soon.",
        "mr": "ट्रॅफिक बडीमध्ये सामील होण्याच्या आपल्या इच्छेबद्दल धन्यवाद! आमची टीम लवकरच संपर्क करेल.",
    },
    "JOIN_APPLICATION_RECEIVED": {
        "en": "Thank you, {0}! Your application ({1}) has been received and is under review.",
        "mr": "धन्यवाद, {0}! आपला अर्ज ({1}) मिळाला असून त्याची तपासणी सुरू आहे.",
    },
    "SUGGESTION_TEXT_PROMPT": {
        "en": "Please type your suggestion and send it as a message.",
        "mr": "कृपया आपली सूचना टाइप करून पाठवा.",
    },
    "SUGGESTION_RESPONSE": {
        "en": "Thank you for your suggestion! We value your feedback and will review it soon.",
        "mr": "आपल्या सूचनेबद्दल धन्यवाद! आम्ही लवकरच तिचा आढावा घेऊ.",
    },
    "LOCATION_REQUEST": {
        "en": "📍 Got it. Now please share the location of the incident using WhatsApp's location button.",
        "mr": "📍 मिळाले. आता कृपया WhatsApp च्या लोकेशन बटणाने घटनेचे स्थान पाठवा.",
    },
    "LOCATION_MISSING_HINT": {
        "en": "We still need the location. Tap 📎 → Location and send your current location.",
        "mr": "आम्हाला अजून स्थान हवे आहे. 📎 → Location वर टॅप करून आपले स्थान पाठवा.",
    },
    "LOCATION_OUTSIDE_JURISDICTION": {
        "en": "This location is outside our jurisdiction. We can only process reports within city limits.",
        "mr": "हे स्थान आमच्या कार्यक्षेत्राबाहेर आहे. आम्ही फक्त शहर हद्दीतील तक्रारी स्वीकारू शकतो.",
    },
    "NOTIFICATION_FAILED": {
        "en": "We could not reach the officers for this area right now, so your report was not recorded. Please try again later.",
        "mr": "या भागातील अधिकाऱ्यांशी सध्या संपर्क होऊ शकला नाही, त्यामुळे आपली तक्रार नोंदवली गेली नाही. कृपया नंतर पुन्हा प्रयत्न करा.",
    },
    "REPORT_RESPONSE": {
        "en": "Thank you! Your {0} report has been submitted successfully and assigned to the {1} division. You will be notified when there are updates.",
        "mr": "धन्यवाद! आपली {0} तक्रार यशस्वीरित्या नोंदवली असून {1} विभागाकडे सोपवली आहे. अपडेट आल्यावर आपल्याला कळवले जाईल.",
    },
    "MISSING_FIELDS": {
        "en": "Some required details are missing: {0}. Please try again.",
        "mr": "काही आवश्यक माहिती अपूर्ण आहे: {0}. कृपया पुन्हा प्रयत्न करा.",
    },
    "REPORT_ERROR": {
        "en": "Sorry, something went wrong while processing your report. Please try again.",
        "mr": "क्षमस्व, आपली तक्रार प्रक्रिया करताना अडचण आली. कृपया पुन्हा प्रयत्न करा.",
    },
    "STATUS_IN_PROGRESS": {
        "en": "Update: your {0} report is now being worked on.",
        "mr": "अपडेट: आपल्या {0} तक्रारीवर काम सुरू आहे.",
    },
    "STATUS_RESOLVED": {
        "en": "✅ Your {0} report has been resolved.\nDetails: {1}",
        "mr": "✅ आपली {0} तक्रार सोडवली गेली आहे.\nतपशील: {1}",
    },
    "STATUS_REJECTED": {
        "en": "Your {0} report could not be taken up.\nReason: {1}",
        "mr": "आपली {0} तक्रार स्वीकारता आली नाही.\nकारण: {1}",
    },
}


class LocalizedText:
    """Template lookup with positional substitution."""

    DEFAULT_LANGUAGE = Language.EN.value

    def __init__(self, texts: Dict[str, Dict[str, str]] = TEXTS):
        self.texts = texts

    def get(self, key: str, language: Union[Language, str, None] = None, *args) -> str:
        variants = self.texts[key]
        lang = language.value if isinstance(language, Language) else (language or self.DEFAULT_LANGUAGE)
        template = variants.get(lang)
        if template is None:
            logger.warning(f"No '{lang}' text for {key}, falling back to English")
            template = variants[self.DEFAULT_LANGUAGE]
        return template.format(*args) if args else template

    def menu(self, language: Union[Language, str, None] = None) -> str:
        return self.get("WELCOME_MESSAGE", language)


# Global service instance (singleton pattern)
_localized_text = None


def get_localized_text() -> LocalizedText:
    global _localized_text
    if _localized_text is None:
        _localized_text = LocalizedText()
    return _localized_text

# i18n.py
# Locale-keyed message catalog. English is never stored here: every call site
# passes its English literal, which is also the fallback for missing keys.
from .config import DEFAULT_LANGUAGE

SUPPORTED_LANGS = {"en": "English", "fr": "Français", "ar": "العربية"}
LANG_COOKIE = "lang"

TRANSLATIONS = {
    "fr": {
        "auth.no_token": "Authentification requise",
        "auth.invalid_token": "Jeton invalide",
        "auth.token_expired": "Jeton expiré",
        "auth.user_not_found": "Utilisateur introuvable",
        "auth.forbidden": "Accès interdit",
        "auth.user_exists": "L'utilisateur existe déjà",
        "auth.invalid_credentials": "Identifiants invalides",
        "auth.email_not_verified": "Veuillez vérifier votre adresse e-mail avant de vous connecter.",
        "auth.register_success_verify": "Inscription réussie ! Veuillez vérifier votre e-mail.",
        "auth.register_success": "Inscription réussie !",
        "auth.login_success": "Connexion réussie",
        "auth.language_updated": "Préférence de langue mise à jour",
        "auth.forgot_password_sent": "Si un compte existe, un lien de réinitialisation a été envoyé.",
        "auth.invalid_or_expired_token": "Jeton de réinitialisation invalide ou expiré",
        "auth.password_reset_success": "Le mot de passe a été réinitialisé",
        "auth.invalid_verification_token": "Jeton de vérification invalide",
        "auth.verification_token_required": "Le jeton de vérification est requis",
        "auth.already_verified": "L'e-mail est déjà vérifié",
        "auth.email_verified": "E-mail vérifié ! Vous pouvez maintenant vous connecter.",
        "auth.verification_email_sent": "E-mail de vérification envoyé.",
        "auth.failed_to_send_email": "Échec de l'envoi de l'e-mail de vérification",
        "validation.error": "Erreur de validation",
        "booking.doctor_not_found": "Médecin introuvable",
        "booking.created": "Réservation créée avec succès",
        "booking.not_found": "Réservation introuvable",
        "booking.unauthorized": "Non autorisé",
        "booking.invalid_status": "Statut invalide",
        "booking.payment_required": "Le paiement doit être effectué avant de terminer la séance",
        "booking.payment_not_completed": "Le paiement doit être validé avant de terminer la séance",
        "booking.status_conflict": "Le statut de la réservation a changé entre-temps",
        "booking.status_updated": "Statut de la réservation mis à jour",
        "booking.cannot_reschedule": "Impossible de reprogrammer cette réservation",
        "booking.rescheduled": "Réservation reprogrammée avec succès",
        "payment.screenshot_required": "La capture d'écran du paiement est requise",
        "payment.client_profile_not_found": "Profil client introuvable",
        "payment.doctor_profile_not_found": "Profil médecin introuvable",
        "payment.booking_not_found": "Réservation introuvable",
        "payment.unauthorized": "Vous n'avez pas la permission pour ce paiement",
        "payment.booking_not_confirmed": "La réservation doit être confirmée avant le paiement",
        "payment.submitted_successfully": "Paiement soumis. Nous allons le vérifier.",
        "payment.not_found": "Paiement introuvable",
        "payment.already_processed": "Le paiement a déjà été traité",
        "payment.verified_successfully": "Paiement vérifié avec succès",
        "message.missing_fields": "Champs obligatoires manquants",
        "message.receiver_not_found": "Destinataire introuvable",
        "message.sent": "Message envoyé",
        "message.marked_read": "Messages marqués comme lus",
        "review.booking_not_found": "Réservation introuvable",
        "review.unauthorized": "Vous n'êtes pas autorisé à évaluer cette réservation",
        "review.session_not_completed": "La séance doit être terminée avant l'évaluation",
        "review.already_exists": "Un avis existe déjà pour cette réservation",
        "review.created": "Avis créé avec succès",
        "sessionNote.booking_not_found": "Réservation introuvable",
        "sessionNote.unauthorized": "Non autorisé",
        "sessionNote.updated": "Note de séance mise à jour",
        "user.email_already_exists": "Cet e-mail existe déjà",
        "user.phone_already_exists": "Ce numéro de téléphone existe déjà",
        "user.profile_updated": "Profil mis à jour avec succès",
        "upload.invalid_type": "Seules les images sont autorisées",
        "upload.too_large": "Le fichier dépasse la taille maximale autorisée",
        "upload.photo_required": "La photo est requise",
        "doctor.not_found": "Médecin introuvable",
        "doctor.profile_not_found": "Profil introuvable",
        "doctor.profile_updated": "Profil mis à jour avec succès",
        "admin.user_verified": "Vérification de l'utilisateur mise à jour",
        "error.internal": "Erreur interne du serveur",
        "error.not_found": "Ressource introuvable",
    },
    "ar": {
        "auth.no_token": "المصادقة مطلوبة",
        "auth.invalid_token": "رمز غير صالح",
        "auth.token_expired": "انتهت صلاحية الرمز",
        "auth.forbidden": "ممنوع",
        "auth.invalid_credentials": "بيانات الاعتماد غير صحيحة",
        "auth.login_success": "تم تسجيل الدخول بنجاح",
        "validation.error": "خطأ في التحقق",
        "booking.created": "تم إنشاء الحجز بنجاح",
        "booking.not_found": "الحجز غير موجود",
        "booking.unauthorized": "غير مصرح",
        "booking.invalid_status": "حالة غير صالحة",
        "booking.payment_required": "يجب إتمام الدفع قبل إنهاء الجلسة",
        "booking.status_updated": "تم تحديث حالة الحجز",
        "booking.rescheduled": "تمت إعادة جدولة الحجز",
        "payment.screenshot_required": "لقطة شاشة الدفع مطلوبة",
        "payment.verified_successfully": "تم التحقق من الدفع بنجاح",
        "message.sent": "تم إرسال الرسالة",
        "message.missing_fields": "حقول مطلوبة مفقودة",
        "message.receiver_not_found": "المستلم غير موجود",
        "review.created": "تم إنشاء التقييم بنجاح",
        "error.internal": "خطأ داخلي في الخادم",
    },
}


def normalize_lang(value):
    if not value:
        return None
    code = str(value).strip().lower()
    for lang in SUPPORTED_LANGS:
        if code.startswith(lang):
            return lang
    return None


def get_locale(request):
    """Pick the request locale from ?lng=, the lang cookie, then Accept-Language."""
    if request is None:
        return DEFAULT_LANGUAGE
    lang = normalize_lang(request.query_params.get("lng")) or normalize_lang(request.cookies.get(LANG_COOKIE))
    if lang:
        return lang
    for part in request.headers.get("accept-language", "").split(","):
        lang = normalize_lang(part.split(";")[0])
        if lang:
            return lang
    return DEFAULT_LANGUAGE


def translate(locale, key, default):
    return TRANSLATIONS.get(locale, {}).get(key, default)


def t(request, key, default):
    return translate(get_locale(request), key, default)

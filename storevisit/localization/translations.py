"""Translated user-facing messages."""

TRANSLATIONS = {
    "en": {
        "errors.resource_not_found": "Resource not found",
        "errors.template_not_found": "Form template {template_id} does not exist",
        "errors.slug_not_found": "No form template with slug {slug}",
        "errors.no_active_template": "No published form template applies to store {store_id}",
        "errors.visit_log_not_found": "Visit log {visit_log_id} does not exist",
        "errors.invalid_state": "Cannot {action} a template in status {status}",
        "errors.publish_conflict": "Template {template_id} was published concurrently, try again",
        "errors.version_conflict": "Another version of template {template_id} was opened concurrently, try again",
        "errors.invalid_scope": "Invalid scope: {reason}",
        "errors.template_immutable": "Template {template_id} is {status} and can no longer be edited",
        "errors.visit_log_immutable": "Visit log {visit_log_id} is already submitted",
        "errors.draft_template": "Template {template_id} is a draft and cannot collect visits",
        "errors.validation_error": "Validation error",
        "errors.answers_required": "At least one question must be answered",
        "errors.store_required": "A store is required to record a visit",
        "errors.unknown_question": "Unknown question {question_id}",
        "errors.duplicate_answer": "Question {question_id} was answered more than once",
        "errors.invalid_answer_value": "Invalid value for question {question_id}: {reason}",
        "errors.invalid_template": "Invalid template: {reason}",
    },
    "es": {
        "errors.resource_not_found": "El recurso solicitado no existe",
        "errors.template_not_found": "El formulario {template_id} no existe",
        "errors.slug_not_found": "No existe un formulario con el identificador {slug}",
        "errors.no_active_template": "No hay un formulario publicado para la tienda {store_id}",
        "errors.visit_log_not_found": "La bitácora {visit_log_id} no existe",
        "errors.invalid_state": "No se puede {action} un formulario en estado {status}",
        "errors.publish_conflict": "El formulario {template_id} se publicó en paralelo, intenta de nuevo",
        "errors.version_conflict": "Se abrió otra versión del formulario {template_id} en paralelo, intenta de nuevo",
        "errors.invalid_scope": "El alcance proporcionado no es válido: {reason}",
        "errors.template_immutable": "El formulario {template_id} está en estado {status} y ya no puede editarse",
        "errors.visit_log_immutable": "La bitácora {visit_log_id} ya fue enviada",
        "errors.draft_template": "El formulario {template_id} es un borrador y no admite visitas",
        "errors.validation_error": "Error de validación",
        "errors.answers_required": "Debes responder al menos una pregunta",
        "errors.store_required": "Debes indicar la tienda para registrar la bitácora",
        "errors.unknown_question": "La pregunta {question_id} no existe en el formulario",
        "errors.duplicate_answer": "La pregunta {question_id} se respondió más de una vez",
        "errors.invalid_answer_value": "Valor inválido para la pregunta {question_id}: {reason}",
        "errors.invalid_template": "Formulario inválido: {reason}",
    },
}

# serenite/forms/admin_forms.py
# Formulaires de la console admin (édition de fiche, justificatifs, actions de ligne).

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import HiddenField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Length, Optional

from serenite.auth.roles import ROLE_OPTIONS


class UserEditForm(FlaskForm):
    nom = StringField("Nom", validators=[Optional(), Length(max=100)])
    prenom = StringField("Prénom", validators=[Optional(), Length(max=100)])
    telephone = StringField("Téléphone", validators=[Optional(), Length(max=30)])
    numero_rue = StringField("Numéro", validators=[Optional(), Length(max=20)])
    rue = StringField("Rue", validators=[Optional(), Length(max=200)])
    code_postal = StringField("Code postal", validators=[Optional(), Length(max=20)])
    ville = StringField("Ville", validators=[Optional(), Length(max=100)])
    complement = StringField("Complément", validators=[Optional(), Length(max=200)])
    submit = SubmitField("Enregistrer")

    def values(self) -> dict:
        return {
            name: (getattr(self, name).data or "")
            for name in ("nom", "prenom", "telephone", "numero_rue", "rue", "code_postal", "ville", "complement")
        }


class DocumentUploadForm(FlaskForm):
    file = FileField("Fichier", validators=[FileRequired("Fichier requis")])
    submit = SubmitField("Téléverser")


class RoleForm(FlaskForm):
    role = SelectField("Rôle", choices=[(r.value, r.value) for r in ROLE_OPTIONS], validators=[DataRequired()])
    next = HiddenField()


class AssignMemberForm(FlaskForm):
    membre_id = SelectField("Membre", choices=[("", "Aucun")], validate_choice=False)
    next = HiddenField()


class RowActionForm(FlaskForm):
    """Actions sans champ (valider, activer/désactiver) : seulement le CSRF."""
    next = HiddenField()

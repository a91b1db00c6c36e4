# serenite/forms/auth_forms.py

# Flask-WTF + WTForms : validation champ par champ et protection CSRF (via SECRET_KEY).
# Un formulaire invalide n'est jamais envoyé à l'API.

import re

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import (
    IntegerField,
    PasswordField,
    RadioField,
    SelectField,
    StringField,
    SubmitField,
)
from wtforms.validators import (
    DataRequired,
    Email,
    EqualTo,
    Length,
    NumberRange,
    Optional,
    ValidationError,
)

FILE_REQUIRED = "Fichier requis"
CARD_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")
CARD_CVC = re.compile(r"^\d{3,4}$")

PAYMENT_METHODS = [
    ("paypal", "PayPal"),
    ("card", "Carte bancaire"),
    ("transfer", "Virement"),
]
MEMBRE_TYPES = [
    ("ASSOCIATION", "Association"),
    ("GROUPE", "Groupe"),
    ("FAMILLE", "Famille"),
]


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Mot de passe", validators=[DataRequired(), Length(min=4)])
    submit = SubmitField("Se connecter")


class ForgotPasswordForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    submit = SubmitField("Réinitialiser mon mot de passe")


class AddressMixin:
    numero_rue = StringField("Numéro", validators=[DataRequired(), Length(min=1)])
    rue = StringField("Rue", validators=[DataRequired(), Length(min=5)])
    code_postal = StringField("Code postal", validators=[DataRequired(), Length(min=5)])
    ville = StringField("Ville", validators=[DataRequired(), Length(min=2)])
    complement_adresse = StringField("Complément d'adresse", validators=[Optional()])

    def address_fields(self) -> dict:
        fields = {
            "adresse.numeroRue": self.numero_rue.data.strip(),
            "adresse.rue": self.rue.data.strip(),
            "adresse.codePostal": self.code_postal.data.strip(),
            "adresse.ville": self.ville.data.strip(),
        }
        if self.complement_adresse.data:
            fields["adresse.complement"] = self.complement_adresse.data.strip()
        return fields


class AdherentRegisterForm(AddressMixin, FlaskForm):
    nom = StringField("Nom", validators=[DataRequired(), Length(min=2)])
    prenom = StringField("Prénom", validators=[DataRequired(), Length(min=2)])
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField(
        "Mot de passe",
        validators=[DataRequired(), Length(min=6, message="Le mot de passe doit contenir au moins 6 caracteres.")],
    )
    password_confirm = PasswordField(
        "Confirmer le mot de passe",
        validators=[
            DataRequired(message="Veuillez confirmer le mot de passe."),
            EqualTo("password", message="Les mots de passe ne correspondent pas."),
        ],
    )
    telephone = StringField("Téléphone", validators=[DataRequired(), Length(min=6)])

    identite = FileField("Pièce d'identité", validators=[FileRequired(FILE_REQUIRED)])
    justificatif_domicile = FileField("Justificatif de domicile", validators=[FileRequired(FILE_REQUIRED)])
    rib = FileField("RIB", validators=[FileRequired(FILE_REQUIRED)])

    payment_method = RadioField(
        "Mode de paiement",
        choices=PAYMENT_METHODS,
        validators=[DataRequired(message="Choisissez un mode de paiement.")],
    )
    adhesion_years = IntegerField("Durée d'adhésion (années)", default=1, validators=[DataRequired(), NumberRange(min=1, max=5)])
    card_name = StringField("Nom sur la carte")
    card_number = StringField("Numéro de carte")
    card_expiry = StringField("Expiration (MM/AA)")
    card_cvc = StringField("CVC")
    submit = SubmitField("Créer mon compte")

    # --- champs carte : requis seulement si paiement par carte
    def _card(self) -> bool:
        return self.payment_method.data == "card"

    def validate_card_name(self, field):
        if self._card() and len((field.data or "").strip()) < 2:
            raise ValidationError("Le nom sur la carte est requis.")

    def validate_card_number(self, field):
        if self._card() and len(re.sub(r"\s+", "", field.data or "")) < 12:
            raise ValidationError("Le numero de carte est invalide.")

    def validate_card_expiry(self, field):
        if self._card() and not CARD_EXPIRY.match(field.data or ""):
            raise ValidationError("La date d'expiration est invalide (MM/AA).")

    def validate_card_cvc(self, field):
        if self._card() and not CARD_CVC.match(field.data or ""):
            raise ValidationError("Le CVC est invalide.")

    def api_fields(self, annual_fee: int) -> dict:
        fields = {
            "nom": self.nom.data.strip(),
            "prenom": self.prenom.data.strip(),
            "email": self.email.data.strip().lower(),
            "password": self.password.data,
            "telephone": self.telephone.data.strip(),
        }
        fields.update(self.address_fields())
        fields["adhesionYears"] = str(self.adhesion_years.data)
        fields["montantTotal"] = str(self.adhesion_years.data * annual_fee)
        return fields

    def api_files(self) -> dict:
        return {
            "identite": self.identite.data,
            "justificatifDomicile": self.justificatif_domicile.data,
            "rib": self.rib.data,
        }


class MembreRegisterForm(AddressMixin, FlaskForm):
    type = SelectField("Type", choices=MEMBRE_TYPES, default="ASSOCIATION", validators=[DataRequired()])
    nom = StringField("Nom", validators=[DataRequired(), Length(min=2, max=50)])
    initiales = StringField("Initiales", validators=[DataRequired(), Length(min=1, max=50)])
    email = StringField("Email", validators=[DataRequired(), Email()])
    telephone = StringField("Téléphone", validators=[DataRequired(), Length(min=6, max=20)])
    centre_interet = StringField("Centre d'intérêt", validators=[Optional(), Length(max=100)])
    delegue_principal = StringField("Délégué principal", validators=[DataRequired(), Length(min=2, max=50)])
    delegue_adjoint1 = StringField("Délégué adjoint 1", validators=[Optional(), Length(max=50)])
    delegue_adjoint2 = StringField("Délégué adjoint 2", validators=[Optional(), Length(max=50)])
    delegue_adjoint3 = StringField("Délégué adjoint 3", validators=[Optional(), Length(max=50)])
    siret = FileField("SIRET", validators=[FileRequired(FILE_REQUIRED)])
    liste_adherents = FileField("Liste des adhérents", validators=[FileRequired(FILE_REQUIRED)])
    submit = SubmitField("Créer le compte")

    OPTIONAL_KEYS = (
        ("centre_interet", "centreInteret"),
        ("delegue_adjoint1", "delegueAdjoint1"),
        ("delegue_adjoint2", "delegueAdjoint2"),
        ("delegue_adjoint3", "delegueAdjoint3"),
    )

    def api_fields(self) -> dict:
        fields = {
            "type": self.type.data,
            "nom": self.nom.data.strip(),
            "initiales": self.initiales.data.strip(),
            "email": self.email.data.strip().lower(),
            "telephone": self.telephone.data.strip(),
        }
        fields.update(self.address_fields())
        for attr, key in self.OPTIONAL_KEYS:
            value = (getattr(self, attr).data or "").strip()
            if value:
                fields[key] = value
        fields["deleguePrincipal"] = self.delegue_principal.data.strip()
        return fields

    def api_files(self) -> dict:
        return {"siret": self.siret.data, "listeAdherents": self.liste_adherents.data}

from wtforms import DateField, Form, StringField
from wtforms.validators import AnyOf, DataRequired, Length

from provao.core.constants import ALTERNATIVAS, DISCIPLINAS
from provao.core.validacao import limpar_texto, maiusculas


class ProvaoForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome do provão é obrigatório"),
        Length(max=150, message="Nome deve ter no máximo 150 caracteres")
    ])
    descricao = StringField('Descrição', filters=[limpar_texto], validators=[Length(max=2000)])
    # 'data' colide com Form.data, por isso o nome mais longo
    data_aplicacao = DateField('Data de aplicação')


class QuestaoForm(Form):
    disciplina = StringField('Disciplina', filters=[limpar_texto], validators=[
        DataRequired(message="Disciplina é obrigatória"),
        AnyOf(DISCIPLINAS, message="Disciplina inválida")
    ])
    habilidade_codigo = StringField('Habilidade', filters=[maiusculas], validators=[
        DataRequired(message="Código da habilidade é obrigatório"),
        Length(max=20)
    ])


class GabaritoForm(Form):
    resposta_correta = StringField('Resposta correta', filters=[maiusculas], validators=[
        DataRequired(message="Alternativa é obrigatória"),
        AnyOf(ALTERNATIVAS, message="Alternativa deve ser A, B, C, D ou E")
    ])


class RespostaForm(Form):
    resposta = StringField('Resposta', filters=[maiusculas], validators=[
        DataRequired(message="Alternativa é obrigatória"),
        AnyOf(ALTERNATIVAS, message="Alternativa deve ser A, B, C, D ou E")
    ])

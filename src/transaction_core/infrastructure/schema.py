import sqlalchemy as sa


metadata = sa.MetaData()

entities = sa.Table(
    "entities",
    metadata,
    sa.Column("id", sa.String(26), primary_key=True),
    sa.Column("subtype", sa.String(100), nullable=False),
    sa.Column("owner_id", sa.String(26), nullable=True),
    sa.Column("title", sa.String(255), nullable=True),
    sa.Column("description", sa.Text, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("ix_entities_subtype", "subtype"),
    sa.Index("ix_entities_created_at", "created_at"),
)

entity_metadata = sa.Table(
    "entity_metadata",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("entity_id", sa.String(26), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
    sa.Column("name", sa.String(100), nullable=False),
    # JSON-encoded so that lookups compare encoded values
    sa.Column("value", sa.Text, nullable=True),
    sa.UniqueConstraint("entity_id", "name", name="uq_entity_metadata_entity_name"),
    sa.Index("ix_entity_metadata_name_value", "name", "value"),
)

entity_relationships = sa.Table(
    "entity_relationships",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("guid_one", sa.String(26), nullable=False),
    sa.Column("relationship", sa.String(50), nullable=False),
    sa.Column("guid_two", sa.String(26), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.UniqueConstraint("guid_one", "relationship", "guid_two", name="uq_entity_relationships_link"),
    sa.Index("ix_entity_relationships_target", "relationship", "guid_two"),
)
